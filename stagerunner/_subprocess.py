"""Shared subprocess helpers for provisioners and command execution."""

from __future__ import annotations

import subprocess

DEFAULT_MAX_OUTPUT_CHARS = 64_000
_TRUNCATED_PREFIX = "[truncated]\n"


class SubprocessTimeout(Exception):
    """Raised when a subprocess exceeds its timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Execution timed out after {timeout}s")


def tail_output(text: str, max_chars: int, prefix: str = _TRUNCATED_PREFIX) -> str:
    """Keep the last *max_chars* characters of *text*, marking the cut with *prefix*."""
    if len(text) <= max_chars:
        return text
    if max_chars <= len(prefix):
        return text[-max_chars:] if max_chars > 0 else ""
    return prefix + text[-(max_chars - len(prefix)) :]


def run_subprocess(
    cmd: list[str],
    *,
    timeout: float | None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a subprocess to completion, capturing stdout and stderr."""
    return subprocess.run(
        cmd,
        capture_output=True,
        timeout=timeout,
        cwd=cwd,
        env=env,
    )


def format_subprocess_output(
    stdout: str,
    stderr: str,
    max_chars: int = 0,
) -> str:
    """Join stdout and stderr into one string, keeping the tail when *max_chars* is set."""
    parts = [p for p in (stdout, stderr) if p]
    output = "\n".join(p.rstrip("\n") for p in parts)
    if max_chars > 0:
        output = tail_output(output, max_chars)
    return output


def run_subprocess_text(
    cmd: list[str],
    *,
    timeout: float | None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> tuple[str, str, int]:
    """Run a subprocess and return ``(stdout, stderr, returncode)`` as decoded text.

    Raises:
        SubprocessTimeout: If the subprocess exceeds *timeout* seconds.
        OSError: If the executable cannot be started.
    """
    try:
        result = run_subprocess(cmd, timeout=timeout, cwd=cwd, env=env)
    except subprocess.TimeoutExpired:
        raise SubprocessTimeout(timeout or 0) from None
    return (
        result.stdout.decode("utf-8", errors="replace"),
        result.stderr.decode("utf-8", errors="replace"),
        result.returncode,
    )
