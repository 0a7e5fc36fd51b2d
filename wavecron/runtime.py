"""Wiring — build store, executor and scheduler from a Config."""

from __future__ import annotations

from dataclasses import dataclass

from wavecron.core.config.schema import Config
from wavecron.core.cron.scheduler import CronScheduler
from wavecron.core.store import JobStore
from wavecron.workflow.backends import Backends, SubprocessShellExecutor
from wavecron.workflow.executor import WaveExecutor
from wavecron.workflow.observer import LoggingObserver, RunObserver


@dataclass
class Runtime:
    config: Config
    store: JobStore
    executor: WaveExecutor
    scheduler: CronScheduler


def build_runtime(
    config: Config,
    backends: Backends | None = None,
    observer: RunObserver | None = None,
) -> Runtime:
    """Assemble the engine. Agent launchers default to unconfigured placeholders."""
    store = JobStore(config.storage_path, max_runs=config.storage.max_runs)
    if backends is None:
        backends = Backends(shell=SubprocessShellExecutor(config.shell.extra_path))
    executor = WaveExecutor(
        store,
        backends=backends,
        observer=observer or LoggingObserver(),
        default_shell_timeout_s=config.shell.default_timeout_s,
    )
    scheduler = CronScheduler(
        store, executor, shutdown_timeout_s=config.scheduler.shutdown_timeout_s
    )
    return Runtime(config=config, store=store, executor=executor, scheduler=scheduler)
