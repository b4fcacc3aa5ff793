"""Execution environments: where a pipeline's commands actually run.

A :class:`Provisioner` hands out one :class:`ExecutionContext` per run.
The context executes shell lines synchronously and is released exactly
once. Release failures are logged, never raised.
"""

from __future__ import annotations

import abc
import logging
import os
import posixpath
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from stagerunner._ids import generate_run_id
from stagerunner._subprocess import (
    DEFAULT_MAX_OUTPUT_CHARS,
    SubprocessTimeout,
    format_subprocess_output,
    run_subprocess_text,
)
from stagerunner.pipeline.errors import ProvisioningError
from stagerunner.pipeline.schema import AgentConfig, Command

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127

_Invocation = tuple[list[str], str | None, dict[str, str] | None]

_CLEANUP_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    output: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ExecutionContext(abc.ABC):
    """A provisioned environment owned by a single pipeline run."""

    def __init__(
        self, description: str, *, max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS
    ) -> None:
        self.description = description
        self.max_output_chars = max_output_chars
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    @abc.abstractmethod
    def _command_argv(self, command: Command) -> _Invocation:
        """Return ``(argv, cwd, env)`` for running *command* in this context."""

    def _cleanup(self) -> None:  # noqa: B027
        """Tear down the environment. May raise; :meth:`release` logs it."""

    def execute(self, command: Command, *, timeout: float | None = None) -> CommandResult:
        """Run *command* to completion and return its exit code and output."""
        if self._released:
            raise RuntimeError(f"Execution context {self.description} has been released")

        argv, cwd, env = self._command_argv(command)
        logger.debug("Executing in %s: %s", self.description, command.run)
        start = time.monotonic()
        try:
            stdout, stderr, returncode = run_subprocess_text(
                argv, timeout=timeout, cwd=cwd, env=env
            )
        except SubprocessTimeout as exc:
            return CommandResult(
                exit_code=TIMEOUT_EXIT_CODE,
                output=str(exc),
                duration_ms=int((time.monotonic() - start) * 1000),
                timed_out=True,
            )
        except OSError as exc:
            return CommandResult(
                exit_code=NOT_FOUND_EXIT_CODE,
                output=f"Cannot start '{argv[0]}': {exc}",
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        return CommandResult(
            exit_code=returncode,
            output=format_subprocess_output(stdout, stderr, max_chars=self.max_output_chars),
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def release(self) -> None:
        """Tear down the environment once. Never raises."""
        with self._lock:
            if self._released:
                return
            self._released = True
        try:
            self._cleanup()
        except Exception:
            logger.warning("Failed to release %s", self.description, exc_info=True)
        else:
            logger.debug("Released %s", self.description)


class Provisioner(abc.ABC):
    @abc.abstractmethod
    def acquire(self) -> ExecutionContext:
        """Create a fresh execution context.

        Raises:
            ProvisioningError: If the environment cannot be created.
        """

    def release(self, context: ExecutionContext) -> None:
        context.release()


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------


class LocalContext(ExecutionContext):
    """Runs shell lines directly on the host, rooted at *workspace*."""

    def __init__(self, workspace: Path, agent: AgentConfig) -> None:
        super().__init__(f"local workspace {workspace}")
        self.workspace = workspace
        self.agent = agent
        self._env = {**os.environ, **agent.env}

    def _command_argv(self, command: Command) -> _Invocation:
        cwd = self.workspace
        if command.working_dir:
            cwd = cwd / command.working_dir
        return [*self.agent.shell, command.run], str(cwd), self._env


class LocalProvisioner(Provisioner):
    def __init__(self, agent: AgentConfig, workspace: Path) -> None:
        self.agent = agent
        self.workspace = workspace

    def acquire(self) -> LocalContext:
        workspace = self.workspace.resolve()
        if not workspace.is_dir():
            raise ProvisioningError(f"Workspace {workspace} is not a directory")
        return LocalContext(workspace, self.agent)


# ---------------------------------------------------------------------------
# Docker
# ---------------------------------------------------------------------------


class DockerContext(ExecutionContext):
    """A long-lived container; each command is a ``docker exec``."""

    def __init__(self, binary: str, container: str, agent: AgentConfig) -> None:
        super().__init__(f"container {container}")
        self.binary = binary
        self.container = container
        self.agent = agent

    def _command_argv(self, command: Command) -> _Invocation:
        workdir = self.agent.workdir
        if command.working_dir:
            workdir = posixpath.join(workdir, command.working_dir)
        argv = [self.binary, "exec", "-w", workdir, self.container, *self.agent.shell, command.run]
        return argv, None, None

    def _cleanup(self) -> None:
        _remove_container(self.binary, self.container)


def _remove_container(binary: str, container: str) -> None:
    _, stderr, returncode = run_subprocess_text(
        [binary, "rm", "-f", container], timeout=_CLEANUP_TIMEOUT_SECONDS
    )
    if returncode != 0:
        raise RuntimeError(f"'{binary} rm -f {container}' exited {returncode}: {stderr.strip()}")


class DockerProvisioner(Provisioner):
    """Start a container from ``agent.image`` with *workspace* mounted at ``agent.workdir``."""

    def __init__(self, agent: AgentConfig, workspace: Path, *, binary: str | None = None) -> None:
        if not agent.image:
            raise ValueError("DockerProvisioner requires an image")
        if binary is None:
            from stagerunner.config import get_docker_binary

            binary = get_docker_binary()
        self.agent = agent
        self.workspace = workspace
        self.binary = binary

    def run_argv(self, name: str) -> list[str]:
        argv = [
            self.binary,
            "run",
            "-t",
            "-d",
            "--name",
            name,
            "-v",
            f"{self.workspace.resolve()}:{self.agent.workdir}",
            "-w",
            self.agent.workdir,
        ]
        for key, value in self.agent.env.items():
            argv += ["-e", f"{key}={value}"]
        # Bare ``-e NAME`` makes the docker client forward the host value.
        for key in self.agent.passthrough_env:
            if key in os.environ:
                argv += ["-e", key]
        argv += ["--entrypoint", "cat", self.agent.image]  # type: ignore[list-item]
        return argv

    def acquire(self) -> DockerContext:
        name = f"stagerunner-{generate_run_id()}"
        argv = self.run_argv(name)
        logger.info("Starting container %s from %s", name, self.agent.image)
        try:
            stdout, stderr, returncode = run_subprocess_text(
                argv, timeout=self.agent.startup_timeout_seconds
            )
        except OSError as exc:
            raise ProvisioningError(f"Cannot run '{self.binary}': {exc}") from exc
        except SubprocessTimeout as exc:
            self._discard(name)
            raise ProvisioningError(f"Container {name} did not start: {exc}") from exc

        if returncode != 0:
            # The image may have been pulled and the container created
            # before start failed; nothing partial is kept.
            self._discard(name)
            raise ProvisioningError(
                f"Container from {self.agent.image} failed to start "
                f"(exit {returncode}): {stderr.strip()}"
            )

        logger.debug("Container %s started (%s)", name, stdout.strip())
        return DockerContext(self.binary, name, self.agent)

    def _discard(self, name: str) -> None:
        try:
            _remove_container(self.binary, name)
        except Exception:
            logger.debug("No container %s to discard", name, exc_info=True)


def create_provisioner(
    agent: AgentConfig,
    workspace: Path,
    *,
    local: bool = False,
) -> Provisioner:
    """Pick Docker when an image is configured (unless *local*), else the host."""
    if agent.image and not local:
        return DockerProvisioner(agent, workspace)
    return LocalProvisioner(agent, workspace)
