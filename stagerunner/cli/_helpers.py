"""Shared CLI helpers: console, exit codes, and pipeline loading."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console

if TYPE_CHECKING:
    from stagerunner.pipeline.schema import PipelineDefinition

console = Console()

EXIT_OK = 0
EXIT_STAGE_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_PROVISIONING_ERROR = 3
EXIT_CANCELLED = 130


def resolve_pipeline_path(pipeline_file: Path | None) -> Path:
    if pipeline_file is not None:
        return pipeline_file
    from stagerunner.config import get_default_pipeline_path

    return get_default_pipeline_path()


def load_pipeline_or_exit(pipeline_file: Path) -> PipelineDefinition:
    from stagerunner.pipeline.errors import ConfigurationError
    from stagerunner.pipeline.loader import load_pipeline

    try:
        return load_pipeline(pipeline_file)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
