"""Cron job types — job definitions, workflow graphs, run records.

Python attributes are snake_case; files on disk and HTTP payloads use
camelCase (``workflowGraph``, ``lastRunAt`` ...).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    model_validator,
)
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# ════════════════════════════════════════════════════════════
# WORKFLOW GRAPH
# ════════════════════════════════════════════════════════════


class NodePosition(_Model):
    """Canvas position; only meaningful to the graph editor."""

    x: float = 0.0
    y: float = 0.0


class HeadlessAgentNodeData(_Model):
    reference_agent_id: str = ""
    prompt: str
    model: str = "sonnet"
    plan_phase: bool = False


class RalphLoopNodeData(_Model):
    reference_agent_id: str = ""
    prompt: str
    completion_phrase: str = ""
    max_iterations: int = 10
    model: str = "sonnet"


class ShellCommandNodeData(_Model):
    command: str
    working_directory: str = ""
    timeout: int = 300  # seconds


class _NodeBase(_Model):
    id: str
    position: NodePosition = Field(default_factory=NodePosition)
    label: str | None = None


class HeadlessAgentNode(_NodeBase):
    type: Literal["headless-agent"] = "headless-agent"
    data: HeadlessAgentNodeData


class RalphLoopNode(_NodeBase):
    type: Literal["ralph-loop"] = "ralph-loop"
    data: RalphLoopNodeData


class ShellCommandNode(_NodeBase):
    type: Literal["shell-command"] = "shell-command"
    data: ShellCommandNodeData


class UnknownNode(_NodeBase):
    """Node of a kind this engine cannot run; fails at execution time."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


NODE_TYPES = ("headless-agent", "ralph-loop", "shell-command")


def _node_tag(value: Any) -> str:
    if isinstance(value, dict):
        node_type = value.get("type")
    else:
        node_type = getattr(value, "type", None)
    return node_type if node_type in NODE_TYPES else "unknown"


WorkflowNode = Annotated[
    Union[
        Annotated[HeadlessAgentNode, Tag("headless-agent")],
        Annotated[RalphLoopNode, Tag("ralph-loop")],
        Annotated[ShellCommandNode, Tag("shell-command")],
        Annotated[UnknownNode, Tag("unknown")],
    ],
    Discriminator(_node_tag),
]


class WorkflowEdge(_Model):
    """Edge source → target: target depends on source."""

    id: str | None = None
    source: str
    target: str


class WorkflowGraph(_Model):
    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> WorkflowGraph:
        ids: set[str] = set()
        for node in self.nodes:
            if node.id in ids:
                raise ValueError(f"Duplicate node id: {node.id}")
            ids.add(node.id)
        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in ids:
                    raise ValueError(f"Edge references unknown node: {end}")
        return self


# ════════════════════════════════════════════════════════════
# JOBS & RUNS
# ════════════════════════════════════════════════════════════


class CronJob(_Model):
    """Cron job definition — one JSON file per job."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    schedule: str
    enabled: bool = True
    workflow_graph: WorkflowGraph = Field(default_factory=WorkflowGraph)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    last_run_at: datetime | None = None
    last_run_status: RunStatus | None = None


class NodeExecutionResult(_Model):
    node_id: str
    status: NodeStatus = NodeStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    output: str | None = None
    error: str | None = None


class CronJobRun(_Model):
    """One execution of a job's workflow graph."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    cron_job_id: str
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None
    status: RunStatus = RunStatus.RUNNING
    node_results: dict[str, NodeExecutionResult] = Field(default_factory=dict)
