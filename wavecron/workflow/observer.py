"""Run observers — progress notifications for whatever UI sits on top."""

from __future__ import annotations

from loguru import logger

from wavecron.core.cron.types import NodeStatus, RunStatus


class RunObserver:
    """No-op base; subclass and override the events you care about."""

    def on_run_started(self, job_id: str, run_id: str) -> None:
        pass

    def on_node_status(
        self, job_id: str, run_id: str, node_id: str, status: NodeStatus
    ) -> None:
        pass

    def on_run_completed(self, job_id: str, run_id: str, status: RunStatus) -> None:
        pass


class LoggingObserver(RunObserver):
    def on_run_started(self, job_id: str, run_id: str) -> None:
        logger.info(f"Run started: job={job_id} run={run_id}")

    def on_node_status(
        self, job_id: str, run_id: str, node_id: str, status: NodeStatus
    ) -> None:
        logger.debug(f"Node {node_id} → {status.value} (job={job_id} run={run_id})")

    def on_run_completed(self, job_id: str, run_id: str, status: RunStatus) -> None:
        logger.info(f"Run completed: job={job_id} run={run_id} status={status.value}")
