"""Tests for CLI context dependency injection."""

import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import typer

from kube_deploy.cli.context import (
    CLIContext,
    build_cli_context,
    get_cli_context,
    load_environment,
)
from kube_deploy.deployment.constants import DEFAULT_CONSTANTS


def _context() -> CLIContext:
    return CLIContext(
        console=Mock(),
        working_dir=Path("/test"),
        env={"A": "1"},
        constants=DEFAULT_CONSTANTS,
    )


def test_cli_context_is_immutable():
    """Test that CLIContext is frozen/immutable."""
    ctx = _context()

    with pytest.raises(AttributeError):
        ctx.console = Mock()  # type: ignore[misc]


def test_load_environment_reads_dotenv(tmp_path: Path):
    """Values from .env should be available to the run."""
    (tmp_path / ".env").write_text("KUBE_DEPLOY_TEST_ONLY=from-dotenv\n")

    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("KUBE_DEPLOY_TEST_ONLY", None)
        env = load_environment(tmp_path)
        assert "KUBE_DEPLOY_TEST_ONLY" not in os.environ

    assert env["KUBE_DEPLOY_TEST_ONLY"] == "from-dotenv"


def test_load_environment_process_env_wins(tmp_path: Path):
    """Variables already set in the environment override .env."""
    (tmp_path / ".env").write_text("KUBE_DEPLOY_TEST_ONLY=from-dotenv\n")

    with patch.dict(os.environ, {"KUBE_DEPLOY_TEST_ONLY": "from-env"}):
        env = load_environment(tmp_path)

    assert env["KUBE_DEPLOY_TEST_ONLY"] == "from-env"


def test_load_environment_without_dotenv(tmp_path: Path):
    with patch.dict(os.environ, {"KUBE_DEPLOY_TEST_ONLY": "x"}):
        env = load_environment(tmp_path)

    assert env["KUBE_DEPLOY_TEST_ONLY"] == "x"


def test_build_cli_context_creates_all_dependencies(tmp_path: Path):
    """Test that build_cli_context uses the current directory."""
    with patch("kube_deploy.cli.context.Path.cwd", return_value=tmp_path):
        ctx = build_cli_context()

    assert ctx.console is not None
    assert ctx.working_dir == tmp_path
    assert ctx.constants is DEFAULT_CONSTANTS
    assert isinstance(ctx.env, dict)


def test_get_cli_context_from_typer_context():
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = _context()
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    result = get_cli_context(typer_ctx)

    assert result is mock_ctx_obj


def test_get_cli_context_with_invalid_obj_falls_back():
    """Test that get_cli_context falls back when ctx.obj is not CLIContext."""
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = "invalid"

    with patch("kube_deploy.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        get_cli_context(typer_ctx)

        mock_build.assert_called_once()


@patch("click.get_current_context")
def test_get_cli_context_uses_click_context_as_fallback(mock_get_click_ctx):
    """Test that get_cli_context uses click context when typer ctx is None."""
    mock_ctx_obj = _context()
    mock_click_context = Mock()
    mock_click_context.obj = mock_ctx_obj
    mock_get_click_ctx.return_value = mock_click_context

    result = get_cli_context(None)

    assert result is mock_ctx_obj
    mock_get_click_ctx.assert_called_once_with(silent=True)
