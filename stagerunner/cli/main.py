"""Typer CLI for stagerunner."""

from __future__ import annotations

from typing import Annotated

import typer

from stagerunner.cli._helpers import console

app = typer.Typer(
    name="stagerunner",
    help="Run a declared list of CI stages, fail-fast, in one environment.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from stagerunner import __version__

        console.print(f"stagerunner {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """stagerunner: a sequential pipeline runner."""
    from stagerunner._log import setup_logging

    setup_logging(verbose=verbose)


from stagerunner.cli.run_cmd import run, validate  # noqa: E402

app.command()(run)
app.command()(validate)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
