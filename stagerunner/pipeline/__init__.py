"""Pipeline module: an ordered list of stages run fail-fast in one environment."""

from stagerunner.pipeline.errors import ConfigurationError, ProvisioningError, StageRunnerError
from stagerunner.pipeline.executor import (
    OutcomeStatus,
    PipelineOutcome,
    StageResult,
    StageStatus,
    run_pipeline,
)
from stagerunner.pipeline.loader import load_pipeline, parse_pipeline
from stagerunner.pipeline.provision import (
    CommandResult,
    DockerProvisioner,
    ExecutionContext,
    LocalProvisioner,
    Provisioner,
    create_provisioner,
)
from stagerunner.pipeline.schema import (
    AgentConfig,
    Command,
    PipelineDefinition,
    PipelineSpec,
    Stage,
)

__all__ = [
    "AgentConfig",
    "Command",
    "CommandResult",
    "ConfigurationError",
    "DockerProvisioner",
    "ExecutionContext",
    "LocalProvisioner",
    "OutcomeStatus",
    "PipelineDefinition",
    "PipelineOutcome",
    "PipelineSpec",
    "ProvisioningError",
    "Provisioner",
    "Stage",
    "StageResult",
    "StageRunnerError",
    "StageStatus",
    "create_provisioner",
    "load_pipeline",
    "parse_pipeline",
    "run_pipeline",
]
