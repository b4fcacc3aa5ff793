"""Exception taxonomy for pipeline loading and provisioning.

Stage failures and cancellation are not exceptions: they are recorded on
the :class:`~stagerunner.pipeline.executor.PipelineOutcome`.
"""

from __future__ import annotations


class StageRunnerError(Exception):
    """Base class for errors raised by stagerunner."""


class ConfigurationError(StageRunnerError):
    """Raised when a pipeline definition cannot be loaded or validated."""


class ProvisioningError(StageRunnerError):
    """Raised when the execution environment cannot be created."""
