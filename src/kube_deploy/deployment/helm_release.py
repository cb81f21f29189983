"""Helm release management.

This module handles chart repository registration and release deployment
via ``helm upgrade --install``.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from loguru import logger

from .models import HelmChart
from .shell_commands import HelmRepo, ShellCommands


def repo_alias(url: str) -> str:
    """Local alias a repository URL is registered under."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def chart_reference(chart: HelmChart, repo: HelmRepo | None) -> str:
    """Chart argument passed to helm.

    A local ``path`` wins, then a bare ``name`` when no repository is set,
    otherwise ``<alias>/<name>``.
    """
    if chart.path:
        return chart.path
    if repo is None or not chart.repo:
        return chart.name
    return f"{repo.name}/{chart.name}"


class HelmReleaseManager:
    """Manages Helm releases for deploy units.

    Handles:
    - Reusing or registering the chart repository
    - Collecting values files from the unit folder
    - Release deployment via upgrade --install
    """

    def __init__(self, commands: ShellCommands) -> None:
        """Initialize the Helm release manager.

        Args:
            commands: Shell command executor
        """
        self.commands = commands

    def ensure_repo(self, url: str) -> HelmRepo | None:
        """Make sure a chart repository is registered.

        An existing registration with the same URL is reused whatever its
        name. Otherwise the repository is added under ``md5(url)`` and the
        indexes are refreshed.

        Args:
            url: Repository URL, empty when the chart needs none

        Returns:
            The registered repository, or None when ``url`` is empty

        Raises:
            ExecutionError: If a helm command fails
        """
        if not url:
            return None

        for repo in self.commands.helm.repo_list():
            if repo.url == url:
                logger.info(f"found existing helm repo {url} with name {repo.name}")
                return repo

        alias = repo_alias(url)
        logger.info(f"adding helm repo {url} with name {alias}")
        self.commands.helm.repo_add(alias, url)
        self.commands.helm.repo_update()
        return HelmRepo(name=alias, url=url)

    def values_files(self, folder: Path, chart: HelmChart) -> list[Path]:
        """Values files for a release, in the order helm receives them.

        Explicit ``values_files`` are taken relative to the folder; without
        them every file under the folder is used.
        """
        if chart.values_files:
            return [folder / name for name in chart.values_files]
        if not folder.is_dir():
            return []
        return sorted(p for p in folder.rglob("*") if p.is_file())

    def deploy(
        self,
        namespace: str,
        folder: Path,
        chart: HelmChart,
        release_name: str,
    ) -> None:
        """Install or upgrade the release for a unit.

        Args:
            namespace: Namespace to deploy into
            folder: Unit folder in the working copy; helm runs from here
            chart: Chart to release
            release_name: Release name used when the chart sets none

        Raises:
            ExecutionError: If a helm command fails
        """
        # A local chart path wins, so its repo is never needed
        repo = None if chart.path else self.ensure_repo(chart.repo)
        self.commands.helm.upgrade_install(
            chart.release_name or release_name,
            chart_reference(chart, repo),
            namespace,
            version=chart.version or None,
            value_files=self.values_files(folder, chart),
            post_renderer=chart.post_renderer or None,
            cwd=folder,
        )


__all__ = ["HelmReleaseManager", "chart_reference", "repo_alias"]
