"""Tests for outcome reporting."""

from __future__ import annotations

import dataclasses
import io

from rich.console import Console

from stagerunner.pipeline.executor import (
    OutcomeStatus,
    PipelineOutcome,
    StageResult,
    StageStatus,
)
from stagerunner.report import format_report, print_report, write_report


def _failed_outcome() -> PipelineOutcome:
    return PipelineOutcome(
        pipeline_name="rust-ci",
        run_id="abc123def456",
        status=OutcomeStatus.FAILED,
        results=(
            StageResult(stage_name="Build", status=StageStatus.SUCCEEDED, duration_ms=10),
            StageResult(
                stage_name="Test",
                status=StageStatus.FAILED,
                exit_code=101,
                command_index=0,
                error="Command 0 exited 101: cargo test",
                output="test result: FAILED. 1 passed; 1 failed",
            ),
            StageResult(
                stage_name="Lint",
                status=StageStatus.SKIPPED,
                skip_reason="Skipped due to fail-fast after prior failure",
            ),
        ),
        duration_ms=42,
    )


def _render(outcome: PipelineOutcome) -> str:
    buf = io.StringIO()
    print_report(outcome, Console(file=buf, width=200, color_system=None))
    return buf.getvalue()


class TestFormatReport:
    def test_one_line_per_stage_plus_overall(self):
        lines = format_report(_failed_outcome())
        assert lines == [
            "Build: Succeeded",
            "Test: Failed (exit_code=101 command_index=0)",
            "Lint: Skipped (Skipped due to fail-fast after prior failure)",
            "Pipeline rust-ci: Failed",
        ]

    def test_deterministic(self):
        outcome = _failed_outcome()
        assert format_report(outcome) == format_report(outcome)

    def test_does_not_mutate(self):
        outcome = _failed_outcome()
        before = dataclasses.asdict(outcome)
        format_report(outcome)
        _render(outcome)
        assert dataclasses.asdict(outcome) == before

    def test_provisioning_failure(self):
        outcome = PipelineOutcome(
            pipeline_name="rust-ci",
            run_id="x",
            status=OutcomeStatus.PROVISIONING_FAILED,
            error="image pull failed",
        )
        assert format_report(outcome) == [
            "Pipeline rust-ci: ProvisioningFailed (image pull failed)"
        ]

    def test_write_report(self, tmp_path):
        path = tmp_path / "reports" / "run.txt"
        write_report(_failed_outcome(), path)
        text = path.read_text()
        assert text.splitlines()[-1] == "Pipeline rust-ci: Failed"
        assert text.endswith("\n")


class TestPrintReport:
    def test_failed_run(self):
        out = _render(_failed_outcome())
        assert "rust-ci" in out
        assert "SUCCEEDED" in out
        assert "FAILED" in out
        assert "SKIPPED" in out
        assert "1 failed" in out
        assert "Pipeline failed" in out

    def test_succeeded_run(self):
        outcome = PipelineOutcome(
            pipeline_name="p",
            run_id="r",
            status=OutcomeStatus.SUCCEEDED,
            results=(StageResult(stage_name="a", status=StageStatus.SUCCEEDED),),
        )
        assert "Pipeline succeeded" in _render(outcome)

    def test_cancelled_run(self):
        outcome = PipelineOutcome(
            pipeline_name="p",
            run_id="r",
            status=OutcomeStatus.CANCELLED,
            results=(
                StageResult(
                    stage_name="a", status=StageStatus.SKIPPED, skip_reason="Cancelled before start"
                ),
            ),
        )
        out = _render(outcome)
        assert "Pipeline cancelled" in out
        assert "Cancelled before start" in out

    def test_provisioning_failed_has_no_table(self):
        outcome = PipelineOutcome(
            pipeline_name="p",
            run_id="r",
            status=OutcomeStatus.PROVISIONING_FAILED,
            error="no docker",
        )
        out = _render(outcome)
        assert "Provisioning failed" in out
        assert "no docker" in out
        assert "Stage" not in out

    def test_markup_in_names_is_escaped(self):
        outcome = PipelineOutcome(
            pipeline_name="p",
            run_id="r",
            status=OutcomeStatus.SUCCEEDED,
            results=(StageResult(stage_name="[bold]x[/bold]", status=StageStatus.SUCCEEDED),),
        )
        assert "[bold]x[/bold]" in _render(outcome)
