"""Load and validate pipeline YAML definitions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stagerunner._yaml import load_yaml_mapping
from stagerunner.pipeline.errors import ConfigurationError
from stagerunner.pipeline.schema import PipelineDefinition

logger = logging.getLogger(__name__)


def parse_pipeline(data: dict[str, Any], *, source: str = "<data>") -> PipelineDefinition:
    """Validate a mapping as a PipelineDefinition.

    Raises:
        ConfigurationError: If the stage list is empty, a stage has no
            commands, or any other field is invalid.
    """
    try:
        pipeline = PipelineDefinition.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Validation failed for {source}:\n{e}") from e

    dupes = pipeline.spec.duplicate_stage_names()
    if dupes:
        logger.warning(
            "Pipeline '%s' has duplicate stage names: %s", pipeline.name, ", ".join(dupes)
        )
    return pipeline


def load_pipeline(path: Path) -> PipelineDefinition:
    """Read a YAML file and validate it as a PipelineDefinition."""
    data = load_yaml_mapping(path, ConfigurationError)
    return parse_pipeline(data, source=str(path))
