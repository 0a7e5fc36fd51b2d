"""Workflow execution — wave compiler, executor, backends, observers."""

from wavecron.workflow.backends import Backends
from wavecron.workflow.compiler import compile_waves
from wavecron.workflow.executor import WaveExecutor
from wavecron.workflow.observer import LoggingObserver, RunObserver

__all__ = ["Backends", "LoggingObserver", "RunObserver", "WaveExecutor", "compile_waves"]
