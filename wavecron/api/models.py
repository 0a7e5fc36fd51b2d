"""API request / response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from wavecron.core.cron.types import RunStatus, WorkflowGraph


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateJobRequest(_ApiModel):
    name: str
    schedule: str
    enabled: bool = True
    workflow_graph: WorkflowGraph = Field(default_factory=WorkflowGraph)


class UpdateJobRequest(_ApiModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = None
    schedule: str | None = None
    enabled: bool | None = None
    workflow_graph: WorkflowGraph | None = None


class ToggleRequest(_ApiModel):
    enabled: bool


class NextRunResponse(_ApiModel):
    expr: str
    next_run: datetime | None = None
    description: str


class ValidateResponse(_ApiModel):
    expr: str
    valid: bool


class RunSummary(_ApiModel):
    job_id: str
    run_id: str | None = None
    status: RunStatus | None = None
    skipped: bool = False


class HealthResponse(_ApiModel):
    status: str
    version: str = ""
    jobs: int = 0
    armed: int = 0
    running: int = 0
