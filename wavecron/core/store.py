"""File-based job store — one JSON file per job, bounded run history.

Layout under the storage root::

    <root>/<job-id>.json         job definition
    <root>/<job-id>/runs.json    run history (most recent ``max_runs``)

Every write goes through a temp file in the same directory followed by
``os.replace``, so readers never see a half-written file.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from wavecron.core.cron.types import CronJob, CronJobRun, WorkflowGraph

MAX_RUNS = 100

# One plain path component: generated ids are uuid4 strings
_JOB_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

_UPDATABLE = frozenset(
    {"name", "schedule", "enabled", "workflow_graph", "last_run_at", "last_run_status"}
)


class JobStore:
    """JSON job store with an in-memory cache; the single source of truth."""

    def __init__(self, root: str | Path, max_runs: int = MAX_RUNS):
        self.root = Path(root).expanduser()
        self.max_runs = max_runs
        self._cache: dict[str, CronJob] = {}
        self._cache_loaded = False
        self._lock = threading.RLock()
        self._ensure_dir(self.root)
        logger.info(f"JobStore initialized: {self.root}")

    # ── Paths ─────────────────────────────────────────────────

    @staticmethod
    def _valid_id(job_id: str) -> bool:
        return isinstance(job_id, str) and _JOB_ID_RE.match(job_id) is not None

    def _job_path(self, job_id: str) -> Path:
        return self.root / f"{job_id}.json"

    def _runs_dir(self, job_id: str) -> Path:
        return self.root / job_id

    def _runs_path(self, job_id: str) -> Path:
        return self._runs_dir(job_id) / "runs.json"

    @staticmethod
    def _ensure_dir(path: Path) -> None:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)

    @staticmethod
    def _atomic_write(path: Path, text: str) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.stem}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _save(self, job: CronJob) -> None:
        self._ensure_dir(self.root)
        self._atomic_write(self._job_path(job.id), job.to_json())
        self._cache[job.id] = job

    # ── Jobs ──────────────────────────────────────────────────

    def create(
        self,
        name: str,
        schedule: str,
        enabled: bool = True,
        workflow_graph: WorkflowGraph | dict[str, Any] | None = None,
    ) -> CronJob:
        """Create and persist a new job with a fresh id and timestamps."""
        if isinstance(workflow_graph, dict):
            workflow_graph = WorkflowGraph.model_validate(workflow_graph)
        now = datetime.now()
        job = CronJob(
            name=name,
            schedule=schedule,
            enabled=enabled,
            workflow_graph=workflow_graph or WorkflowGraph(),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._save(job)
        logger.info(f"Cron job created: {job.id} ({name}, {schedule})")
        return job

    def load(self, job_id: str) -> CronJob | None:
        """Load one job (cache first). Missing or unreadable → None."""
        if not self._valid_id(job_id):
            return None
        with self._lock:
            if job_id in self._cache:
                return self._cache[job_id]

            path = self._job_path(job_id)
            if not path.is_file():
                return None
            try:
                job = CronJob.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.error(f"Failed to load cron job {job_id}: {e}")
                return None
            self._cache[job_id] = job
            return job

    def load_all(self) -> list[CronJob]:
        """All jobs. The first call scans the directory; later calls use the cache."""
        with self._lock:
            if self._cache_loaded:
                return list(self._cache.values())

            if self.root.is_dir():
                for path in sorted(self.root.glob("*.json")):
                    if not path.is_file():
                        continue
                    try:
                        job = CronJob.model_validate_json(path.read_text(encoding="utf-8"))
                    except (OSError, ValidationError) as e:
                        logger.warning(f"Skipping unreadable job file {path.name}: {e}")
                        continue
                    if not self._valid_id(job.id):
                        logger.warning(f"Skipping job file {path.name} with invalid id {job.id!r}")
                        continue
                    self._cache[job.id] = job

            self._cache_loaded = True
            return list(self._cache.values())

    def update(self, job_id: str, **changes: Any) -> CronJob | None:
        """Merge ``changes`` into the job, bump ``updated_at``, persist.

        Returns ``None`` if the job does not exist.
        """
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            job = self.load(job_id)
            if job is None:
                return None
            merged = job.model_dump()
            merged.update(changes)
            merged["updated_at"] = datetime.now()
            updated = CronJob.model_validate(merged)
            self._save(updated)
            return updated

    def delete(self, job_id: str) -> bool:
        """Remove the job file and its run history. False if nothing existed."""
        if not self._valid_id(job_id):
            logger.warning(f"Refusing to delete invalid job id: {job_id!r}")
            return False
        with self._lock:
            path = self._job_path(job_id)
            runs_dir = self._runs_dir(job_id)
            existed = path.exists() or runs_dir.exists() or job_id in self._cache
            if path.exists():
                path.unlink()
            if runs_dir.exists():
                shutil.rmtree(runs_dir, ignore_errors=True)
            self._cache.pop(job_id, None)
        if existed:
            logger.info(f"Cron job deleted: {job_id}")
        return existed

    # ── Run history ───────────────────────────────────────────

    def list_runs(self, job_id: str) -> list[CronJobRun]:
        """Run history, oldest first. Missing or corrupt history → []."""
        if not self._valid_id(job_id):
            return []
        path = self._runs_path(job_id)
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [CronJobRun.model_validate(r) for r in data]
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Corrupt run history for {job_id}, treating as empty: {e}")
            return []

    def append_run(self, job_id: str, run: CronJobRun) -> None:
        """Append a finished run, keeping only the most recent ``max_runs``."""
        if not self._valid_id(job_id):
            raise ValueError(f"Invalid job id: {job_id!r}")
        with self._lock:
            runs_dir = self._runs_dir(job_id)
            self._ensure_dir(runs_dir)
            runs = self.list_runs(job_id)
            runs.append(run)
            runs = runs[-self.max_runs:]
            payload = json.dumps(
                [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in runs],
                indent=2,
            )
            self._atomic_write(self._runs_path(job_id), payload)
