"""Exception hierarchy for deployment runs.

Fatal errors carry a short message plus optional details that the CLI
renders in a panel. ``SecretError`` is the only recoverable condition: the
secret injector logs it and moves on to the next file.
"""

from __future__ import annotations


class KubeDeployError(Exception):
    """Raised when a deployment run cannot continue."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(KubeDeployError):
    """The deployment configuration is malformed or contradictory.

    Always raised before any cluster mutation happens.
    """


class SourceError(KubeDeployError):
    """The config source could not be opened or fetched."""


class SecretError(KubeDeployError):
    """An ejson secret file does not describe a valid secret."""


class ExecutionError(KubeDeployError):
    """An external command or filesystem step failed during the run."""

    def __init__(
        self,
        message: str,
        details: str | None = None,
        path: str | None = None,
    ):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message, details)


__all__ = [
    "KubeDeployError",
    "ConfigurationError",
    "SourceError",
    "SecretError",
    "ExecutionError",
]
