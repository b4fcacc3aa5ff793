"""Pipeline commands: run, validate."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.markup import escape
from rich.table import Table

from stagerunner.cli._helpers import (
    EXIT_CANCELLED,
    EXIT_OK,
    EXIT_PROVISIONING_ERROR,
    EXIT_STAGE_FAILED,
    console,
    load_pipeline_or_exit,
    resolve_pipeline_path,
)

if TYPE_CHECKING:
    from stagerunner.pipeline.executor import PipelineOutcome
    from stagerunner.pipeline.schema import PipelineDefinition

PipelineFileArg = Annotated[
    Path | None,
    typer.Argument(help="Path to pipeline YAML (default: $STAGERUNNER_PIPELINE or pipeline.yaml)"),
]


def _exit_code_for(outcome: PipelineOutcome) -> int:
    from stagerunner.pipeline.executor import OutcomeStatus

    return {
        OutcomeStatus.SUCCEEDED: EXIT_OK,
        OutcomeStatus.FAILED: EXIT_STAGE_FAILED,
        OutcomeStatus.CANCELLED: EXIT_CANCELLED,
        OutcomeStatus.PROVISIONING_FAILED: EXIT_PROVISIONING_ERROR,
    }[outcome.status]


def _display_definition(pipe: PipelineDefinition) -> None:
    table = Table(title=f"Pipeline: {escape(pipe.name)}")
    table.add_column("#", justify="right")
    table.add_column("Stage", style="cyan")
    table.add_column("Commands")

    for position, stage in enumerate(pipe.spec.stages, 1):
        commands = "\n".join(escape(c.run) for c in stage.commands)
        table.add_row(str(position), escape(stage.name), commands)

    console.print(table)
    agent = pipe.spec.agent
    console.print(f"\n[bold]Agent:[/bold] {escape(agent.image or 'local host')}")
    if agent.env:
        console.print("[bold]Environment:[/bold]")
        for k, v in agent.env.items():
            console.print(f"  {escape(k)} = {escape(v)}")


def validate(pipeline_file: PipelineFileArg = None) -> None:
    """Validate a pipeline definition and show its stages."""
    pipe = load_pipeline_or_exit(resolve_pipeline_path(pipeline_file))
    _display_definition(pipe)
    console.print("\n[green]Pipeline definition is valid.[/green]")


def run(
    pipeline_file: PipelineFileArg = None,
    local: Annotated[
        bool, typer.Option("--local", help="Run on the host even if an image is configured")
    ] = False,
    workspace: Annotated[
        Path | None,
        typer.Option(help="Workspace directory (default: the pipeline file's directory)"),
    ] = None,
    report: Annotated[
        Path | None, typer.Option(help="Also write the plain-text summary to this file")
    ] = None,
) -> None:
    """Run a pipeline's stages in order, stopping at the first failure."""
    from stagerunner._signal import shutdown_signals
    from stagerunner.pipeline.executor import run_pipeline
    from stagerunner.pipeline.provision import create_provisioner
    from stagerunner.report import format_report, print_report, write_report

    path = resolve_pipeline_path(pipeline_file)
    pipe = load_pipeline_or_exit(path)
    workspace_dir = workspace if workspace is not None else path.resolve().parent
    provisioner = create_provisioner(pipe.spec.agent, workspace_dir, local=local)

    stop = threading.Event()

    def _on_first_signal() -> None:
        console.print("\n[yellow]Cancelling after the current command...[/yellow]")

    with (
        shutdown_signals(stop, on_first_signal=_on_first_signal),
        console.status(f"[dim]Running pipeline {escape(pipe.name)}...[/dim]") as status,
    ):

        def _on_command(stage, index, command) -> None:
            status.update(f"[dim]{escape(stage.name)}[/dim] $ {escape(command.run)}")

        outcome = run_pipeline(pipe, provisioner, cancel_event=stop, on_command=_on_command)

    print_report(outcome, console)
    console.print("\n[bold]Summary:[/bold]")
    for line in format_report(outcome):
        console.print(escape(line), highlight=False)
    if report is not None:
        write_report(outcome, report)

    code = _exit_code_for(outcome)
    if code != EXIT_OK:
        raise typer.Exit(code)
