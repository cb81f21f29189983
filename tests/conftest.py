"""Shared fixtures for the kube-deploy test suite."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kube_deploy.deployment.shell_commands.types import CommandResult
from kube_deploy.infra.source import LocalConfigSource


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under root; a trailing / makes a folder."""
    for relative, content in files.items():
        target = root / relative
        if relative.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Build a config tree under tmp_path/config."""

    def _make(files: dict[str, str]) -> Path:
        return write_tree(tmp_path / "config", files)

    return _make


@pytest.fixture
def make_source(
    make_tree: Callable[[dict[str, str]], Path],
) -> Callable[[dict[str, str]], LocalConfigSource]:
    """Build a config tree and open it as a local source."""

    def _make(files: dict[str, str]) -> LocalConfigSource:
        return LocalConfigSource(make_tree(files))

    return _make


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock command runner."""
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True)
    runner.run_checked.return_value = CommandResult(success=True)
    return runner


@pytest.fixture
def mock_commands() -> MagicMock:
    """Create a mock ShellCommands with an empty helm repo list."""
    commands = MagicMock()
    commands.helm.repo_list.return_value = []
    return commands
