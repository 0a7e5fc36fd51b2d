"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from wavecron import __version__
from wavecron.api.routes import router
from wavecron.core.config.schema import Config
from wavecron.runtime import build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: Config → JobStore → WaveExecutor → CronScheduler. Shutdown: drain runs."""
    config = Config.from_yaml()
    runtime = build_runtime(config)

    if config.scheduler.enabled:
        await runtime.scheduler.start()

    app.state.config = config
    app.state.store = runtime.store
    app.state.executor = runtime.executor
    app.state.scheduler = runtime.scheduler

    logger.info(f"wavecron API started, storage: {runtime.store.root}")
    yield

    await runtime.scheduler.shutdown()
    logger.info("wavecron API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="wavecron API",
        description="Cron-triggered workflow engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
