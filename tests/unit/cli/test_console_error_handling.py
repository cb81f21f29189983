import pytest
import typer

from kube_deploy.cli.shared.console import with_error_handling
from kube_deploy.deployment.errors import ConfigurationError, ExecutionError


def test_with_error_handling_handles_deployment_error():
    @with_error_handling
    def _command() -> None:
        raise ConfigurationError("Boom", details="extra")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_execution_error_with_path():
    @with_error_handling
    def _command() -> None:
        raise ExecutionError("kubectl failed", path="app/postdeploy")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_keyboard_interrupt():
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_with_error_handling_lets_other_errors_through():
    @with_error_handling
    def _command() -> None:
        raise ValueError("unexpected")

    with pytest.raises(ValueError):
        _command()
