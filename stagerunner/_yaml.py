"""Shared YAML-to-Pydantic loader utility."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_yaml_mapping(path: Path, error_cls: type[Exception]) -> dict[str, Any]:
    """Read a YAML file that must contain a top-level mapping.

    Parameters:
        path: Path to the YAML file.
        error_cls: The exception class to raise on any failure.

    Returns:
        The parsed mapping, ready for ``model_validate``.
    """
    try:
        raw = path.read_text()
    except OSError as e:
        raise error_cls(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise error_cls(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    return data
