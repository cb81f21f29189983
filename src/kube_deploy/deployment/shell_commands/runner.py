"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
all specialized command modules.
"""

from __future__ import annotations

import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from ..errors import ExecutionError
from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    Every invocation is a blocking child process. The environment passed at
    construction is handed to each child explicitly; the process environment
    of the CLI itself is never modified.

    All specialized command modules (Helm, kubectl, ejson, git) use this
    runner for actual command execution.
    """

    def __init__(
        self,
        working_dir: Path,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the command runner.

        Args:
            working_dir: Directory commands run from by default
            env: Environment for child processes (defaults to inheriting ours)
        """
        self.working_dir = working_dir
        self.env = dict(env) if env is not None else None

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
        capture_output: bool = False,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        When ``capture_output`` is False the child inherits our stdout and
        stderr so tool output reaches the operator directly.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            input: Text written to the child's stdin
            capture_output: Whether to capture stdout/stderr

        Returns:
            CommandResult with success status, output, return code and duration

        Raises:
            ExecutionError: If the executable cannot be started
        """
        name = cmd[0]
        logger.debug(" ".join(cmd))

        start = time.monotonic()
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.working_dir,
                env=self.env,
                input=input,
                capture_output=capture_output,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ExecutionError(f"Failed to run {name}: {e}") from e
        duration = time.monotonic() - start

        if result.returncode != 0:
            logger.error(f"error running {name}: exit code {result.returncode}")
        logger.info(f"{name} took {duration:.3f}s")

        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
            duration=duration,
        )

    def run_checked(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        input: str | None = None,
        capture_output: bool = False,
    ) -> CommandResult:
        """Execute a command, raising on a non-zero exit code.

        Args:
            cmd: Command and arguments
            cwd: Working directory (defaults to working_dir)
            input: Text written to the child's stdin
            capture_output: Whether to capture stdout/stderr

        Returns:
            CommandResult of the successful command

        Raises:
            ExecutionError: If the command exits with a non-zero code
        """
        result = self.run(cmd, cwd=cwd, input=input, capture_output=capture_output)
        if not result.success:
            raise ExecutionError(
                f"Command failed with exit code {result.returncode}: {' '.join(cmd)}",
                details=result.stderr.strip() or None,
            )
        return result
