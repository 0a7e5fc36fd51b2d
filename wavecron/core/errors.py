"""Exception hierarchy."""

from __future__ import annotations


class WavecronError(Exception):
    """Base class for all wavecron errors."""


class BackendNotConfigured(WavecronError):
    """No launcher was injected for a node kind."""


class ShellCommandError(WavecronError):
    """Shell command exited non-zero or timed out."""

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
