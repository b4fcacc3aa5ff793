"""Shared test fixtures and helpers."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from stagerunner.pipeline.errors import ProvisioningError
from stagerunner.pipeline.provision import CommandResult, ExecutionContext, Provisioner
from stagerunner.pipeline.schema import (
    Command,
    PipelineDefinition,
    PipelineMetadata,
    PipelineSpec,
    Stage,
)


def make_stage(name: str, *commands: str) -> Stage:
    return Stage(name=name, commands=[Command(run=c) for c in commands or ("true",)])


def make_pipeline(*stages: Stage, name: str = "test-pipeline", **spec_kwargs) -> PipelineDefinition:
    return PipelineDefinition(
        metadata=PipelineMetadata(name=name),
        spec=PipelineSpec(stages=list(stages), **spec_kwargs),
    )


class FakeContext(ExecutionContext):
    """Records executed shell lines; exit codes come from *exit_codes* (default 0)."""

    def __init__(
        self,
        exit_codes: dict[str, int],
        *,
        before_execute: Callable[[Command], None] | None = None,
    ) -> None:
        super().__init__("fake context")
        self.exit_codes = exit_codes
        self.before_execute = before_execute
        self.executed: list[str] = []
        self.timeouts: list[float | None] = []
        self.cleanup_calls = 0

    def _command_argv(self, command):  # pragma: no cover - execute is overridden
        raise NotImplementedError

    def execute(self, command, *, timeout=None):
        if self.released:
            raise RuntimeError("released")
        if self.before_execute is not None:
            self.before_execute(command)
        self.executed.append(command.run)
        self.timeouts.append(timeout)
        code = self.exit_codes.get(command.run, 0)
        return CommandResult(exit_code=code, output=f"out:{command.run}")

    def _cleanup(self) -> None:
        self.cleanup_calls += 1


class FakeProvisioner(Provisioner):
    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        *,
        fail_acquire: bool = False,
        before_execute: Callable[[Command], None] | None = None,
    ) -> None:
        self.exit_codes = exit_codes or {}
        self.fail_acquire = fail_acquire
        self.before_execute = before_execute
        self.acquire_calls = 0
        self.release_calls = 0
        self.contexts: list[FakeContext] = []

    def acquire(self) -> FakeContext:
        self.acquire_calls += 1
        if self.fail_acquire:
            raise ProvisioningError("image pull failed")
        ctx = FakeContext(self.exit_codes, before_execute=self.before_execute)
        self.contexts.append(ctx)
        return ctx

    def release(self, context: ExecutionContext) -> None:
        self.release_calls += 1
        super().release(context)

    @property
    def executed(self) -> list[str]:
        return [run for ctx in self.contexts for run in ctx.executed]


@pytest.fixture
def provisioner():
    """Provide a provisioner whose commands all exit 0."""
    return FakeProvisioner()
