"""Cron job API routes — CRUD, run now, history, schedule helpers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from wavecron import __version__
from wavecron.api.deps import get_scheduler, get_store
from wavecron.api.models import (
    CreateJobRequest,
    HealthResponse,
    NextRunResponse,
    RunSummary,
    ToggleRequest,
    UpdateJobRequest,
    ValidateResponse,
)
from wavecron.core.cron.expression import describe, is_valid, next_run
from wavecron.core.cron.scheduler import CronScheduler
from wavecron.core.cron.types import CronJob, CronJobRun
from wavecron.core.store import JobStore

router = APIRouter()


def _require_valid(schedule: str) -> None:
    if not is_valid(schedule):
        raise HTTPException(status_code=422, detail=f"Invalid cron expression: {schedule}")


@router.get("/health", response_model=HealthResponse)
async def health(
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    return HealthResponse(
        status="ok",
        version=__version__,
        jobs=len(store.load_all()),
        armed=len(scheduler.armed_jobs()),
        running=len(scheduler.running_jobs()),
    )


@router.get("/cron/jobs", response_model=list[CronJob])
async def list_jobs(store: JobStore = Depends(get_store)):
    return store.load_all()


@router.get("/cron/jobs/{job_id}", response_model=CronJob)
async def get_job(job_id: str, store: JobStore = Depends(get_store)):
    job = store.load(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Cron job not found")
    return job


@router.post("/cron/jobs", response_model=CronJob, status_code=201)
async def create_job(
    body: CreateJobRequest,
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    _require_valid(body.schedule)
    job = store.create(body.name, body.schedule, body.enabled, body.workflow_graph)
    scheduler.handle_job_update(job.id)
    return job


@router.patch("/cron/jobs/{job_id}", response_model=CronJob)
async def update_job(
    job_id: str,
    body: UpdateJobRequest,
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    changes = {
        name: getattr(body, name)
        for name in body.model_fields_set
        if getattr(body, name) is not None
    }
    if "schedule" in changes:
        _require_valid(changes["schedule"])
    job = store.update(job_id, **changes)
    if job is None:
        raise HTTPException(status_code=404, detail="Cron job not found")
    scheduler.handle_job_update(job.id)
    return job


@router.post("/cron/jobs/{job_id}/enabled", response_model=CronJob)
async def toggle_job(
    job_id: str,
    body: ToggleRequest,
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    job = store.update(job_id, enabled=body.enabled)
    if job is None:
        raise HTTPException(status_code=404, detail="Cron job not found")
    scheduler.handle_job_update(job.id)
    return job


@router.delete("/cron/jobs/{job_id}", status_code=204)
async def delete_job(
    job_id: str,
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    scheduler.handle_job_delete(job_id)
    if not store.delete(job_id):
        raise HTTPException(status_code=404, detail="Cron job not found")
    return Response(status_code=204)


@router.post("/cron/jobs/{job_id}/run", response_model=RunSummary)
async def run_job_now(
    job_id: str,
    store: JobStore = Depends(get_store),
    scheduler: CronScheduler = Depends(get_scheduler),
):
    """Run the job immediately (also when disabled); waits for completion."""
    if store.load(job_id) is None:
        raise HTTPException(status_code=404, detail="Cron job not found")
    run = await scheduler.run_now(job_id)
    if run is None:
        return RunSummary(job_id=job_id, skipped=True)
    return RunSummary(job_id=job_id, run_id=run.id, status=run.status)


@router.get("/cron/jobs/{job_id}/runs", response_model=list[CronJobRun])
async def list_runs(
    job_id: str,
    limit: int = Query(default=100, ge=1, le=100),
    store: JobStore = Depends(get_store),
):
    """Run history, newest first."""
    return list(reversed(store.list_runs(job_id)))[:limit]


@router.get("/cron/next-run", response_model=NextRunResponse)
async def get_next_run(expr: str = Query(...)):
    return NextRunResponse(expr=expr, next_run=next_run(expr), description=describe(expr))


@router.get("/cron/validate", response_model=ValidateResponse)
async def validate(expr: str = Query(...)):
    return ValidateResponse(expr=expr, valid=is_valid(expr))
