"""Tests for kubectl apply commands."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kube_deploy.deployment.shell_commands.kubectl import KubectlCommands


@pytest.fixture
def kubectl_commands(mock_runner: MagicMock) -> KubectlCommands:
    """Create KubectlCommands instance with mock runner."""
    return KubectlCommands(mock_runner)


class TestKubectlApply:
    """Tests for the kubectl apply variants."""

    def test_apply_resource_pipes_json(
        self, kubectl_commands: KubectlCommands, mock_runner: MagicMock
    ) -> None:
        """Resources should be serialized and piped over stdin."""
        resource = {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cm"}}

        kubectl_commands.apply_resource(resource)

        args, kwargs = mock_runner.run_checked.call_args
        assert args[0] == ["kubectl", "apply", "--wait", "-f", "-"]
        assert json.loads(kwargs["input"]) == resource

    def test_apply_folder_is_recursive(
        self, kubectl_commands: KubectlCommands, mock_runner: MagicMock, tmp_path: Path
    ) -> None:
        kubectl_commands.apply_folder(tmp_path)

        mock_runner.run_checked.assert_called_once_with(
            ["kubectl", "apply", "-R", "-f", str(tmp_path)]
        )

    def test_apply_kustomize(
        self, kubectl_commands: KubectlCommands, mock_runner: MagicMock, tmp_path: Path
    ) -> None:
        kubectl_commands.apply_kustomize(tmp_path)

        mock_runner.run_checked.assert_called_once_with(
            ["kubectl", "apply", "-k", str(tmp_path)]
        )


class TestCreateNamespace:
    """Tests for namespace creation."""

    def test_namespace_is_applied(
        self, kubectl_commands: KubectlCommands, mock_runner: MagicMock
    ) -> None:
        """Creating a namespace should apply a Namespace object."""
        kubectl_commands.create_namespace("web")

        manifest = json.loads(mock_runner.run_checked.call_args[1]["input"])
        assert manifest == {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": "web"},
        }
