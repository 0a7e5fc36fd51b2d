"""Cron scheduling — expression evaluation, job types, timer scheduler."""

from wavecron.core.cron.expression import describe, is_valid, next_run, parse_field
from wavecron.core.cron.scheduler import CronScheduler
from wavecron.core.cron.types import CronJob, CronJobRun, WorkflowGraph

__all__ = [
    "CronJob",
    "CronJobRun",
    "CronScheduler",
    "WorkflowGraph",
    "describe",
    "is_valid",
    "next_run",
    "parse_field",
]
