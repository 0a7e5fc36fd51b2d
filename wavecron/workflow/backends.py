"""Execution backends — the three collaborators a workflow node dispatches to.

Only the contract lives here: start a unit of work and report success (by
returning) or failure (by raising). Concrete agent launchers are injected by
the embedding application; the shell executor ships with a subprocess
implementation.
"""

from __future__ import annotations

import abc
import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from wavecron.core.errors import BackendNotConfigured, ShellCommandError

DEFAULT_SHELL_TIMEOUT_S = 300

# Common user bin dirs missing from PATH when launched from a service manager
_EXTRA_PATHS = (
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "~/.local/bin",
    "~/.cargo/bin",
    "~/bin",
)


@dataclass
class LaunchResult:
    id: str


@dataclass
class LoopConfig:
    prompt: str
    completion_phrase: str
    max_iterations: int
    model: str
    reference_agent_id: str = ""


@dataclass
class ShellResult:
    stdout: str
    stderr: str


class HeadlessAgentLauncher(abc.ABC):
    @abc.abstractmethod
    async def start(
        self,
        reference_agent_id: str,
        prompt: str,
        model: str,
        options: dict[str, Any] | None = None,
    ) -> LaunchResult:
        """Start a headless agent and return its identifier."""
        ...


class LoopLauncher(abc.ABC):
    @abc.abstractmethod
    async def start(self, config: LoopConfig) -> LaunchResult:
        """Start an iterative loop and return its identifier."""
        ...


class ShellExecutor(abc.ABC):
    @abc.abstractmethod
    async def exec(
        self,
        command: str,
        cwd: str | None = None,
        timeout_ms: int = DEFAULT_SHELL_TIMEOUT_S * 1000,
    ) -> ShellResult:
        """Run ``command``; raise ShellCommandError on non-zero exit or timeout."""
        ...


class UnconfiguredLauncher(HeadlessAgentLauncher, LoopLauncher):
    """Placeholder used until the host application injects a real launcher."""

    def __init__(self, kind: str):
        self.kind = kind

    async def start(self, *args: Any, **kwargs: Any) -> LaunchResult:
        raise BackendNotConfigured(f"No {self.kind} launcher configured")


def extended_path(extra: list[str] | None = None) -> str:
    """Current PATH plus user bin directories that exist on this machine."""
    current = os.environ.get("PATH", "").split(os.pathsep)
    candidates = [str(Path(p).expanduser()) for p in (*(extra or []), *_EXTRA_PATHS)]
    additions = [p for p in candidates if p not in current and Path(p).is_dir()]
    return os.pathsep.join([*additions, *current])


class SubprocessShellExecutor(ShellExecutor):
    """Runs commands through the system shell with an extended PATH."""

    def __init__(self, extra_path: list[str] | None = None):
        self.extra_path = extra_path or []

    async def exec(
        self,
        command: str,
        cwd: str | None = None,
        timeout_ms: int = DEFAULT_SHELL_TIMEOUT_S * 1000,
    ) -> ShellResult:
        env = {**os.environ, "PATH": extended_path(self.extra_path)}
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd or None,
            env=env,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ShellCommandError(
                f"Command timed out after {timeout_ms / 1000:g}s: {command}"
            )

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            logger.debug(f"Command exited {proc.returncode}: {command}")
            detail = err.strip() or out.strip()
            message = f"Command failed with exit code {proc.returncode}: {command}"
            if detail:
                message = f"{message}\n{detail}"
            raise ShellCommandError(message, stdout=out, stderr=err)
        return ShellResult(stdout=out, stderr=err)


@dataclass
class Backends:
    """The collaborators a WaveExecutor dispatches to, one per node kind."""

    headless_agent: HeadlessAgentLauncher = field(
        default_factory=lambda: UnconfiguredLauncher("headless agent")
    )
    loop: LoopLauncher = field(default_factory=lambda: UnconfiguredLauncher("ralph loop"))
    shell: ShellExecutor = field(default_factory=SubprocessShellExecutor)
