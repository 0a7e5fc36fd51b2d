"""WaveExecutor — runs a job's workflow graph wave by wave."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any

from loguru import logger

from wavecron.core.cron.types import (
    CronJob,
    CronJobRun,
    HeadlessAgentNode,
    NodeExecutionResult,
    NodeStatus,
    RalphLoopNode,
    RunStatus,
    ShellCommandNode,
    UnknownNode,
    WorkflowNode,
)
from wavecron.workflow.backends import DEFAULT_SHELL_TIMEOUT_S, Backends, LoopConfig
from wavecron.workflow.compiler import compile_waves
from wavecron.workflow.observer import RunObserver

if TYPE_CHECKING:
    from wavecron.core.store import JobStore


def overall_status(results: list[NodeExecutionResult]) -> RunStatus:
    """success + failure → partial, failure only → failed, else success.

    Skipped nodes count as neither.
    """
    has_success = any(r.status == NodeStatus.SUCCESS for r in results)
    has_failure = any(r.status == NodeStatus.FAILED for r in results)
    if has_failure and has_success:
        return RunStatus.PARTIAL
    if has_failure:
        return RunStatus.FAILED
    return RunStatus.SUCCESS


class WaveExecutor:
    """Executes workflow graphs: concurrent within a wave, sequential across.

    Once any node fails, every node in the following waves is recorded as
    ``skipped`` without being dispatched. Nodes already running in the
    failing wave are left to finish.
    """

    def __init__(
        self,
        store: JobStore,
        backends: Backends | None = None,
        observer: RunObserver | None = None,
        default_shell_timeout_s: int = DEFAULT_SHELL_TIMEOUT_S,
    ):
        self.store = store
        self.backends = backends or Backends()
        self.observer = observer or RunObserver()
        self.default_shell_timeout_s = default_shell_timeout_s

    async def run(self, job: CronJob) -> CronJobRun:
        """Execute ``job`` once, persist the run, and update the job summary."""
        run = CronJobRun(cron_job_id=job.id)
        self._notify("on_run_started", job.id, run.id)

        failed = False
        for wave in compile_waves(job.workflow_graph):
            if failed:
                for node in wave:
                    run.node_results[node.id] = NodeExecutionResult(
                        node_id=node.id, status=NodeStatus.SKIPPED
                    )
                    self._notify("on_node_status", job.id, run.id, node.id, NodeStatus.SKIPPED)
                continue

            results = await asyncio.gather(
                *(self._dispatch(job.id, run.id, node) for node in wave)
            )
            for result in results:
                run.node_results[result.node_id] = result
                if result.status == NodeStatus.FAILED:
                    failed = True

        run.status = overall_status(list(run.node_results.values()))
        run.completed_at = datetime.now()

        if self.store.load(job.id) is None:
            logger.warning(f"Job {job.id} was deleted during its run, not recording run {run.id}")
        else:
            self.store.append_run(job.id, run)
            self.store.update(job.id, last_run_at=run.started_at, last_run_status=run.status)

        self._notify("on_run_completed", job.id, run.id, run.status)
        logger.info(f"Job '{job.name}' ({job.id}) completed with status: {run.status.value}")
        return run

    async def _dispatch(self, job_id: str, run_id: str, node: WorkflowNode) -> NodeExecutionResult:
        self._notify("on_node_status", job_id, run_id, node.id, NodeStatus.RUNNING)
        result = await self.execute_node(node)
        self._notify("on_node_status", job_id, run_id, node.id, result.status)
        return result

    async def execute_node(self, node: WorkflowNode) -> NodeExecutionResult:
        """Run a single node; errors become a ``failed`` result, never raise."""
        result = NodeExecutionResult(
            node_id=node.id, status=NodeStatus.RUNNING, started_at=datetime.now()
        )
        try:
            if isinstance(node, HeadlessAgentNode):
                result.output = await self._run_headless_agent(node)
                result.status = NodeStatus.SUCCESS
            elif isinstance(node, RalphLoopNode):
                result.output = await self._run_ralph_loop(node)
                result.status = NodeStatus.SUCCESS
            elif isinstance(node, ShellCommandNode):
                result.output = await self._run_shell_command(node)
                result.status = NodeStatus.SUCCESS
            elif isinstance(node, UnknownNode):
                result.status = NodeStatus.FAILED
                result.error = f"Unknown node type: {node.type}"
            else:
                raise TypeError(f"Unhandled node class: {type(node).__name__}")
        except Exception as e:
            logger.error(f"Node {node.id} ({node.type}) failed: {e}")
            result.status = NodeStatus.FAILED
            result.error = str(e) or type(e).__name__

        result.completed_at = datetime.now()
        return result

    async def _run_headless_agent(self, node: HeadlessAgentNode) -> str:
        data = node.data
        # haiku cannot drive a headless agent; run those on sonnet
        model = "sonnet" if data.model == "haiku" else data.model
        launched = await self.backends.headless_agent.start(
            data.reference_agent_id,
            data.prompt,
            model,
            {"skip_plan_phase": not data.plan_phase},
        )
        return f"Started headless agent: {launched.id}"

    async def _run_ralph_loop(self, node: RalphLoopNode) -> str:
        data = node.data
        launched = await self.backends.loop.start(
            LoopConfig(
                prompt=data.prompt,
                completion_phrase=data.completion_phrase,
                max_iterations=data.max_iterations,
                model=data.model,
                reference_agent_id=data.reference_agent_id,
            )
        )
        return f"Started Ralph Loop: {launched.id}"

    async def _run_shell_command(self, node: ShellCommandNode) -> str:
        data = node.data
        timeout_s = data.timeout or self.default_shell_timeout_s
        result = await self.backends.shell.exec(
            data.command,
            cwd=data.working_directory or None,
            timeout_ms=timeout_s * 1000,
        )
        return result.stdout or result.stderr

    def _notify(self, event: str, *args: Any) -> None:
        try:
            getattr(self.observer, event)(*args)
        except Exception as e:
            logger.error(f"Run observer {event} failed: {e}")
