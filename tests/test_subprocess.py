"""Tests for subprocess helpers."""

from __future__ import annotations

import pytest

from stagerunner._subprocess import (
    SubprocessTimeout,
    format_subprocess_output,
    run_subprocess_text,
    tail_output,
)


class TestTailOutput:
    def test_short_text_unchanged(self):
        assert tail_output("abc", 10) == "abc"

    def test_keeps_tail(self):
        out = tail_output("x" * 50 + "END", 20)
        assert len(out) == 20
        assert out.startswith("[truncated]\n")
        assert out.endswith("END")

    def test_tiny_limit(self):
        assert tail_output("abcdef", 2) == "ef"
        assert tail_output("abcdef", 0) == ""


class TestFormatOutput:
    def test_joins_streams(self):
        assert format_subprocess_output("out\n", "err\n") == "out\nerr"

    def test_empty(self):
        assert format_subprocess_output("", "") == ""

    def test_truncates(self):
        out = format_subprocess_output("a" * 100, "", max_chars=30)
        assert len(out) == 30


class TestRunSubprocessText:
    def test_captures(self, tmp_path):
        stdout, stderr, code = run_subprocess_text(
            ["sh", "-c", "echo out; echo err >&2; exit 7"], timeout=10, cwd=str(tmp_path)
        )
        assert stdout == "out\n"
        assert stderr == "err\n"
        assert code == 7

    def test_env(self):
        stdout, _, _ = run_subprocess_text(
            ["sh", "-c", 'printf "%s" "$ONLY_VAR"'], timeout=10, env={"ONLY_VAR": "v"}
        )
        assert stdout == "v"

    def test_timeout(self):
        with pytest.raises(SubprocessTimeout) as exc_info:
            run_subprocess_text(["sleep", "1"], timeout=0.1)
        assert exc_info.value.timeout == 0.1

    def test_missing_executable(self):
        with pytest.raises(OSError):
            run_subprocess_text(["definitely-not-a-binary-xyz"], timeout=5)
