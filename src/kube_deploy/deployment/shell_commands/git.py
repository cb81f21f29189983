"""Git command abstractions.

This module provides the clone operation used to fetch remote config
sources.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import SourceError

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitCommands:
    """Git-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Git commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def clone(self, url: str, dest: Path, *, depth: int | None = 1) -> None:
        """Clone a repository into ``dest``.

        Authentication is whatever the local git client is configured with
        (ssh agent, credential helpers).

        Args:
            url: Repository URL
            dest: Target directory; must not exist or be empty
            depth: History depth, None for a full clone

        Raises:
            SourceError: If the clone fails
        """
        cmd = ["git", "clone", "--quiet"]
        if depth is not None:
            cmd.extend(["--depth", str(depth)])
        cmd.extend([url, str(dest)])

        result = self._runner.run(cmd, capture_output=True)
        if not result.success:
            raise SourceError(
                f"Failed to clone config repo {url}",
                details=result.stderr.strip() or None,
            )
