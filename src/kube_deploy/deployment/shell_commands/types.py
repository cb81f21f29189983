"""Data types for shell command results.

This module contains the dataclasses shared by the shell command modules.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmRepo",
]


@dataclass
class CommandResult:
    """Result of a command execution.

    Attributes:
        success: Whether the command exited with code 0
        stdout: Captured standard output (empty when streams are inherited)
        stderr: Captured standard error (empty when streams are inherited)
        returncode: Process exit code
        duration: Wall-clock duration in seconds
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    duration: float = 0.0


@dataclass
class HelmRepo:
    """A Helm chart repository registered with the local helm client.

    Attributes:
        name: Local alias of the repository
        url: Repository URL
    """

    name: str
    url: str
