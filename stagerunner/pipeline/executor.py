"""Sequential, fail-fast execution of pipeline stages."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from stagerunner.pipeline.errors import ConfigurationError, ProvisioningError
from stagerunner.pipeline.provision import ExecutionContext, Provisioner
from stagerunner.pipeline.schema import Command, PipelineDefinition, Stage

logger = logging.getLogger(__name__)

OnCommand = Callable[[Stage, int, Command], None]


class StageStatus(StrEnum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class OutcomeStatus(StrEnum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    PROVISIONING_FAILED = "ProvisioningFailed"


@dataclass(frozen=True)
class StageResult:
    stage_name: str
    status: StageStatus
    exit_code: int | None = None
    command_index: int | None = None
    error: str | None = None
    skip_reason: str | None = None
    output: str = ""
    duration_ms: int = 0


@dataclass(frozen=True)
class PipelineOutcome:
    pipeline_name: str
    run_id: str
    status: OutcomeStatus
    results: tuple[StageResult, ...] = ()
    error: str | None = None
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def failed_stage(self) -> StageResult | None:
        for result in self.results:
            if result.status is StageStatus.FAILED:
                return result
        return None


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _check_runnable(pipeline: PipelineDefinition) -> None:
    # Models built with ``model_construct`` skip validation.
    if not pipeline.spec.stages:
        raise ConfigurationError(f"Pipeline '{pipeline.name}' has no stages")
    for stage in pipeline.spec.stages:
        if not stage.commands:
            raise ConfigurationError(f"Stage '{stage.name}' has no commands")


def _run_stage(
    stage: Stage,
    pipeline: PipelineDefinition,
    context: ExecutionContext,
    cancel_event: threading.Event | None,
    on_command: OnCommand | None,
) -> tuple[StageResult, bool]:
    """Run one stage's commands in order.

    Returns the stage result and whether the run was cancelled during it.
    """
    start = time.monotonic()
    total = len(stage.commands)

    for index, command in enumerate(stage.commands):
        if cancel_event is not None and cancel_event.is_set():
            if index == 0:
                reason = "Cancelled before start"
            else:
                reason = f"Cancelled after {index} of {total} commands"
            return StageResult(
                stage_name=stage.name,
                status=StageStatus.SKIPPED,
                skip_reason=reason,
                duration_ms=_elapsed_ms(start),
            ), True

        if on_command is not None:
            on_command(stage, index, command)

        result = context.execute(command, timeout=pipeline.timeout_for(command))
        logger.debug(
            "Stage '%s' command %d exited %d in %dms",
            stage.name,
            index,
            result.exit_code,
            result.duration_ms,
        )
        if result.success:
            continue

        if cancel_event is not None and cancel_event.is_set():
            # The abort signal reaches the child too; its exit is not a stage failure.
            return StageResult(
                stage_name=stage.name,
                status=StageStatus.SKIPPED,
                exit_code=result.exit_code,
                command_index=index,
                skip_reason=f"Cancelled while running command {index}",
                output=result.output,
                duration_ms=_elapsed_ms(start),
            ), True

        if result.timed_out:
            error = f"Command {index} timed out: {command.run}"
        else:
            error = f"Command {index} exited {result.exit_code}: {command.run}"
        return StageResult(
            stage_name=stage.name,
            status=StageStatus.FAILED,
            exit_code=result.exit_code,
            command_index=index,
            error=error,
            output=result.output,
            duration_ms=_elapsed_ms(start),
        ), False

    return StageResult(
        stage_name=stage.name,
        status=StageStatus.SUCCEEDED,
        duration_ms=_elapsed_ms(start),
    ), False


def run_pipeline(
    pipeline: PipelineDefinition,
    provisioner: Provisioner,
    *,
    cancel_event: threading.Event | None = None,
    on_command: OnCommand | None = None,
) -> PipelineOutcome:
    """Run every stage in declaration order inside one provisioned context.

    The first non-zero exit fails its stage and skips everything after
    it. Nothing is retried. The context is released exactly once whenever
    it was acquired.

    Raises:
        ConfigurationError: If the pipeline has no stages or a stage has no
            commands; raised before anything is provisioned.
    """
    _check_runnable(pipeline)

    from stagerunner._ids import generate_run_id

    run_id = generate_run_id()
    start = time.monotonic()

    try:
        context = provisioner.acquire()
    except ProvisioningError as e:
        logger.error("Provisioning failed for pipeline '%s': %s", pipeline.name, e)
        return PipelineOutcome(
            pipeline_name=pipeline.name,
            run_id=run_id,
            status=OutcomeStatus.PROVISIONING_FAILED,
            error=str(e),
            duration_ms=_elapsed_ms(start),
        )

    results: list[StageResult] = []
    status = OutcomeStatus.SUCCEEDED
    try:
        for stage in pipeline.spec.stages:
            if status is not OutcomeStatus.SUCCEEDED:
                reason = (
                    "Skipped after cancellation"
                    if status is OutcomeStatus.CANCELLED
                    else "Skipped due to fail-fast after prior failure"
                )
                results.append(
                    StageResult(
                        stage_name=stage.name, status=StageStatus.SKIPPED, skip_reason=reason
                    )
                )
                continue

            logger.info("Stage '%s' started", stage.name)
            stage_result, cancelled = _run_stage(
                stage, pipeline, context, cancel_event, on_command
            )
            results.append(stage_result)
            if cancelled:
                logger.warning(
                    "Pipeline '%s' cancelled during stage '%s'", pipeline.name, stage.name
                )
                status = OutcomeStatus.CANCELLED
            elif stage_result.status is StageStatus.FAILED:
                logger.info("Stage '%s' failed: %s", stage.name, stage_result.error)
                status = OutcomeStatus.FAILED
            else:
                logger.info("Stage '%s' succeeded", stage.name)
    finally:
        provisioner.release(context)

    return PipelineOutcome(
        pipeline_name=pipeline.name,
        run_id=run_id,
        status=status,
        results=tuple(results),
        duration_ms=_elapsed_ms(start),
    )
