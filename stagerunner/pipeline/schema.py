"""Pydantic models for pipeline YAML definitions."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ApiVersion(StrEnum):
    V1 = "stagerunner/v1"


class Command(BaseModel):
    """One shell line executed inside the execution context."""

    model_config = ConfigDict(frozen=True)

    run: str
    working_dir: str | None = None
    timeout_seconds: int | None = Field(default=None, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _coerce_shell_line(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"run": data}
        return data

    @field_validator("run")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Command must not be blank")
        return v


class Stage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    commands: list[Command] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _name_non_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Stage name must not be blank")
        return v


class AgentConfig(BaseModel):
    """Where commands run: a container image, or the host when ``image`` is unset."""

    model_config = ConfigDict(frozen=True)

    image: str | None = None
    workdir: str = "/workspace"
    env: dict[str, str | int | float | bool] = {}
    passthrough_env: list[str] = []
    shell: list[str] = Field(default=["sh", "-c"], min_length=1)
    startup_timeout_seconds: int = Field(default=600, gt=0)

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, v: Any) -> Any:
        # YAML reads `RUST_BACKTRACE: 1` as an int; commands only ever see strings.
        if not isinstance(v, dict):
            return v
        out: dict[Any, Any] = {}
        for key, value in v.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, int | float):
                value = str(value)
            out[key] = value
        return out


class PipelineMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""


class PipelineSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent: AgentConfig = AgentConfig()
    stages: list[Stage] = Field(min_length=1)
    command_timeout_seconds: int | None = Field(default=None, gt=0)

    def stage_names(self) -> list[str]:
        return [s.name for s in self.stages]

    def duplicate_stage_names(self) -> list[str]:
        seen: set[str] = set()
        dupes: list[str] = []
        for name in self.stage_names():
            if name in seen and name not in dupes:
                dupes.append(name)
            seen.add(name)
        return dupes


class PipelineDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    apiVersion: ApiVersion = ApiVersion.V1
    kind: Literal["Pipeline"] = "Pipeline"
    metadata: PipelineMetadata
    spec: PipelineSpec

    @property
    def name(self) -> str:
        return self.metadata.name

    def timeout_for(self, command: Command) -> int | None:
        """Per-command timeout, falling back to the pipeline default."""
        if command.timeout_seconds is not None:
            return command.timeout_seconds
        return self.spec.command_timeout_seconds
