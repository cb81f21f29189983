"""Shell command abstractions for deployment operations.

This package provides a small typed interface over the external tools a
deployment run drives. It is organized into specialized modules per tool:

- helm: repository registration and release upgrades
- kubectl: resource, folder and kustomize applies
- ejson: secret decryption
- git: config repository cloning

Design Principles:
- Single Responsibility: Each module focuses on one tool
- Consistent Errors: failed commands raise ExecutionError (SourceError for git)
- Explicit Environment: every child process gets the run environment passed
  to the runner, never the mutated process environment

Usage:
    from kube_deploy.deployment.shell_commands import ShellCommands

    commands = ShellCommands(workdir, env=run_env)
    commands.kubectl.create_namespace("my-app")
"""

from collections.abc import Mapping
from pathlib import Path

from .ejson import EjsonCommands
from .git import GitCommands
from .helm import HelmCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import CommandResult, HelmRepo


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        helm: Helm-related commands
        kubectl: Kubernetes kubectl commands
        ejson: Ejson decryption commands
        git: Git repository commands

    Example:
        >>> commands = ShellCommands(Path("/tmp/kube-deploy-x"), env={"NAMESPACE": "app"})
        >>> commands.kubectl.apply_folder(Path("/tmp/kube-deploy-x/predeploy"))
    """

    def __init__(
        self,
        working_dir: Path,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the shell commands executor.

        Args:
            working_dir: Directory commands run from by default
            env: Environment passed to every child process
        """
        self._working_dir = Path(working_dir)
        self._runner = CommandRunner(self._working_dir, env)

        self.helm = HelmCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner)
        self.ejson = EjsonCommands(self._runner)
        self.git = GitCommands(self._runner)

    @property
    def working_dir(self) -> Path:
        """Get the default working directory."""
        return self._working_dir

    @property
    def runner(self) -> CommandRunner:
        """Get the underlying command runner."""
        return self._runner


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmRepo",
    "CommandRunner",
    "HelmCommands",
    "KubectlCommands",
    "EjsonCommands",
    "GitCommands",
]
