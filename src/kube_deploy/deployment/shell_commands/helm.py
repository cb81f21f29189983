"""Helm command abstractions.

This module provides commands for Helm repository registration and
release deployment.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ExecutionError
from .types import CommandResult, HelmRepo

if TYPE_CHECKING:
    from .runner import CommandRunner

NO_REPOSITORIES_MESSAGE = "no repositories to show"


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Repository management (list, add, update)
    - Release management (upgrade --install)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Repository Management
    # =========================================================================

    def repo_list(self) -> list[HelmRepo]:
        """List the chart repositories known to the helm client.

        Returns:
            Registered repositories; empty when helm has none configured

        Raises:
            ExecutionError: If helm fails or prints unparseable output
        """
        result = self._runner.run(
            ["helm", "repo", "list", "-o", "json"], capture_output=True
        )
        # helm exits non-zero when the repository list is empty
        if NO_REPOSITORIES_MESSAGE in result.stdout + result.stderr:
            return []
        if not result.success:
            raise ExecutionError(
                "Failed to list helm repositories", details=result.stderr.strip()
            )

        try:
            repos = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise ExecutionError(f"Unexpected output from helm repo list: {e}") from e

        return [HelmRepo(name=r.get("name", ""), url=r.get("url", "")) for r in repos]

    def repo_add(self, name: str, url: str) -> CommandResult:
        """Register a chart repository under a local alias.

        Args:
            name: Local alias for the repository
            url: Repository URL

        Returns:
            CommandResult of the successful command
        """
        return self._runner.run_checked(["helm", "repo", "add", name, url])

    def repo_update(self) -> CommandResult:
        """Refresh the chart index of every registered repository."""
        return self._runner.run_checked(["helm", "repo", "update"])

    # =========================================================================
    # Release Management
    # =========================================================================

    def upgrade_install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        version: str | None = None,
        value_files: list[Path] | None = None,
        post_renderer: str | None = None,
        cwd: Path | None = None,
        wait: bool = True,
    ) -> CommandResult:
        """Deploy or upgrade a Helm release.

        Uses `helm upgrade --install` to idempotently deploy a chart.

        Args:
            release_name: Name for the Helm release
            chart: Chart reference (local path, `repo/name` or bare name)
            namespace: Kubernetes namespace for deployment
            version: Optional chart version pin
            value_files: Values files passed with `-f`, in order
            post_renderer: Optional post-renderer executable
            cwd: Directory helm runs from (relative post-renderers resolve here)
            wait: Whether to wait for resources to be ready

        Returns:
            CommandResult of the successful command

        Raises:
            ExecutionError: If helm exits with a non-zero code

        Example:
            >>> helm.upgrade_install(
            ...     "my-app",
            ...     "3f2a.../app",
            ...     "production",
            ...     value_files=[Path("./helmvalues/values.yaml")],
            ... )
        """
        cmd = ["helm", "upgrade"]
        if wait:
            cmd.append("--wait")
        cmd.append("--install")

        if version:
            cmd.extend(["--version", version])

        cmd.extend(["-n", namespace, release_name, chart])

        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])

        if post_renderer:
            cmd.extend(["--post-renderer", post_renderer])

        logger.info(
            f"Deploying helm chart {chart} with release {release_name} into {namespace}"
        )
        return self._runner.run_checked(cmd, cwd=cwd)
