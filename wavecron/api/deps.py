"""FastAPI dependency injection — pull singletons from app.state."""

from __future__ import annotations

from fastapi import Request

from wavecron.core.cron.scheduler import CronScheduler
from wavecron.core.store import JobStore


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_scheduler(request: Request) -> CronScheduler:
    return request.app.state.scheduler
