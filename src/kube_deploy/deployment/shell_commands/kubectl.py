"""Kubectl command abstractions.

This module provides the `kubectl apply` variants the deployment driver
needs: single manifests piped over stdin, recursive folder applies and
kustomize builds.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Applying in-memory resources (namespaces, secrets)
    - Applying a folder of manifests recursively
    - Applying a kustomization
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def apply_resource(self, resource: dict[str, Any]) -> CommandResult:
        """Apply a single resource object.

        The resource is serialized to JSON and piped into
        `kubectl apply --wait -f -`.

        Args:
            resource: Kubernetes object as a plain dictionary

        Returns:
            CommandResult of the successful command

        Raises:
            ExecutionError: If kubectl exits with a non-zero code
        """
        manifest = json.dumps(resource)
        return self._runner.run_checked(
            ["kubectl", "apply", "--wait", "-f", "-"], input=manifest
        )

    def apply_folder(self, folder: Path) -> CommandResult:
        """Apply every manifest under a folder (`kubectl apply -R -f`)."""
        return self._runner.run_checked(["kubectl", "apply", "-R", "-f", str(folder)])

    def apply_kustomize(self, folder: Path) -> CommandResult:
        """Build and apply a kustomization (`kubectl apply -k`)."""
        return self._runner.run_checked(["kubectl", "apply", "-k", str(folder)])

    def create_namespace(self, namespace: str) -> CommandResult:
        """Idempotently create a namespace by applying its manifest.

        Args:
            namespace: Name of the namespace

        Returns:
            CommandResult of the successful command
        """
        return self.apply_resource(
            {
                "apiVersion": "v1",
                "kind": "Namespace",
                "metadata": {"name": namespace},
            }
        )
