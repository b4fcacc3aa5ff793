"""Render a PipelineOutcome as text or as a rich table."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

from stagerunner.pipeline.executor import (
    OutcomeStatus,
    PipelineOutcome,
    StageResult,
    StageStatus,
)

if TYPE_CHECKING:
    from rich.console import Console

_PREVIEW_CHARS = 400

_STATUS_STYLE = {
    StageStatus.SUCCEEDED: "green",
    StageStatus.FAILED: "red",
    StageStatus.SKIPPED: "dim",
}


def _stage_detail(result: StageResult) -> str:
    if result.status is StageStatus.FAILED:
        return f"exit_code={result.exit_code} command_index={result.command_index}"
    if result.status is StageStatus.SKIPPED and result.skip_reason:
        return result.skip_reason
    return ""


def format_report(outcome: PipelineOutcome) -> list[str]:
    """Return one line per stage result followed by the overall status line."""
    lines: list[str] = []
    for result in outcome.results:
        detail = _stage_detail(result)
        line = f"{result.stage_name}: {result.status}"
        if detail:
            line += f" ({detail})"
        lines.append(line)

    overall = f"Pipeline {outcome.pipeline_name}: {outcome.status}"
    if outcome.error:
        overall += f" ({outcome.error})"
    lines.append(overall)
    return lines


def write_report(outcome: PipelineOutcome, path: Path) -> None:
    """Persist :func:`format_report` lines to *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(format_report(outcome)) + "\n")


def print_report(outcome: PipelineOutcome, console: Console) -> None:
    table = Table(title=f"Pipeline: {escape(outcome.pipeline_name)} ({outcome.run_id})")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Duration")
    table.add_column("Detail")

    for result in outcome.results:
        style = _STATUS_STYLE[result.status]
        status = f"[{style}]{result.status.upper()}[/{style}]"
        detail = result.error if result.status is StageStatus.FAILED else _stage_detail(result)
        table.add_row(
            escape(result.stage_name),
            status,
            f"{result.duration_ms}ms",
            escape(detail or ""),
        )

    if outcome.results:
        console.print(table)

    failed = outcome.failed_stage
    if failed is not None and failed.output:
        preview = failed.output[-_PREVIEW_CHARS:]
        console.print(f"\n[bold]Output of '{escape(failed.stage_name)}':[/bold]")
        console.print(escape(preview), highlight=False)

    total = f"[bold]Total: {outcome.duration_ms}ms[/bold]"
    if outcome.status is OutcomeStatus.SUCCEEDED:
        console.print(f"\n{total} [green]Pipeline succeeded[/green]")
    elif outcome.status is OutcomeStatus.CANCELLED:
        console.print(f"\n{total} [yellow]Pipeline cancelled[/yellow]")
    elif outcome.status is OutcomeStatus.PROVISIONING_FAILED:
        console.print(
            f"\n{total} [red]Provisioning failed:[/red] {escape(outcome.error or '')}"
        )
    else:
        console.print(f"\n{total} [red]Pipeline failed[/red]")
