"""Environment-driven defaults for the CLI.

Nothing in the runner core reads the environment; these only feed the
command-line layer.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_PIPELINE_FILE = "pipeline.yaml"


def get_default_pipeline_path() -> Path:
    """Return ``STAGERUNNER_PIPELINE`` if set, else ``./pipeline.yaml``."""
    env = os.environ.get("STAGERUNNER_PIPELINE")
    if env:
        return Path(env)
    return Path(DEFAULT_PIPELINE_FILE)


def get_docker_binary() -> str:
    """Return the container CLI to drive (``STAGERUNNER_DOCKER``, default ``docker``)."""
    return os.environ.get("STAGERUNNER_DOCKER") or "docker"
