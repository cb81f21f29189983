"""Deployment session orchestration.

A session owns every resource of one run and releases it on all exit paths:

1. Open the config source (local folder or shallow clone)
2. Resolve the effective config
3. Resolve the kubeconfig and build the run environment
4. Copy the config folder into an interpolated working copy
5. Bring up the bastion tunnel when one is enabled
6. Hand the plan to the deployment driver
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from kube_deploy.infra.kubeconfig import resolve_kubeconfig
from kube_deploy.infra.source import ConfigSource, open_config_source
from kube_deploy.infra.tunnel import bastion_tunnel
from kube_deploy.utils.env_vars import substitute_env_vars

from .configure import resolve
from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .driver import Deployer, DeploymentReport, sort_units
from .errors import ConfigurationError
from .models import EffectiveConfig
from .shell_commands import ShellCommands


def build_run_env(
    config: EffectiveConfig,
    kubeconfig: str,
    base_env: Mapping[str, str],
) -> dict[str, str]:
    """Build the environment handed to every child process.

    Deployment vars override inherited values. ``KUBECONFIG`` is dropped
    when running in-cluster (empty kubeconfig).
    """
    env = dict(base_env)
    env.update(config.vars)

    if kubeconfig:
        env["KUBECONFIG"] = kubeconfig
    else:
        env.pop("KUBECONFIG", None)

    env["NAMESPACE"] = config.namespace
    return env


@contextmanager
def working_copy(
    source: ConfigSource,
    config_folder: str,
    env: Mapping[str, str],
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> Generator[Path]:
    """Copy a config folder into a temporary, interpolated working copy.

    Yields:
        The working copy root; the config folder sits at the same relative
        path as in the source
    """
    workdir = Path(tempfile.mkdtemp(prefix=constants.WORKDIR_PREFIX))
    try:
        logger.debug(f"copying {config_folder} to {workdir}")
        source.copy_tree(
            config_folder,
            workdir,
            lambda _path, text: substitute_env_vars(text, env),
        )
        yield workdir
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


class DeploymentSession:
    """Resolves and runs one deployment.

    Attributes:
        start: Values supplied on the command line; they win over files
        target: Target to apply, empty for none
        env: Base environment (defaults to a snapshot of os.environ)
        constants: Deployment constants
    """

    def __init__(
        self,
        start: EffectiveConfig,
        target: str = "",
        env: Mapping[str, str] | None = None,
        constants: DeploymentConstants | None = None,
    ) -> None:
        self.start = start
        self.target = target
        self.env = dict(os.environ if env is None else env)
        self.constants = constants or DEFAULT_CONSTANTS

    def _shell_commands(self, working_dir: Path, env: Mapping[str, str]) -> ShellCommands:
        return ShellCommands(working_dir, env=env)

    def _resolve(self, source: ConfigSource, config_folder: str) -> EffectiveConfig:
        config = resolve(source, config_folder, self.target, self.start, self.env)
        config = config.model_copy(update={"deploy_folders": sort_units(config.deploy_folders)})
        logger.debug(f"using config {config.model_dump_json()}")
        return config

    def plan(self) -> EffectiveConfig:
        """Resolve the effective config without touching the cluster."""
        git = self._shell_commands(Path.cwd(), self.env).git
        with open_config_source(
            self.start.config_folder, self.start.config_repo, git
        ) as (source, config_folder):
            return self._resolve(source, config_folder)

    def run(self) -> DeploymentReport:
        """Resolve the config and deploy it.

        Returns:
            The driver's deployment report

        Raises:
            KubeDeployError: If resolution or any deployment step fails
        """
        git = self._shell_commands(Path.cwd(), self.env).git
        with open_config_source(
            self.start.config_folder, self.start.config_repo, git
        ) as (source, config_folder):
            config = self._resolve(source, config_folder)
            if not config.namespace:
                raise ConfigurationError(
                    "namespace must be set",
                    details="Set namespace in metadata.yml or pass --namespace",
                )

            with resolve_kubeconfig(
                config.kubeconfig_path, config.kubeconfig_env, self.env, self.constants
            ) as kubeconfig:
                run_env = build_run_env(config, kubeconfig, self.env)

                with working_copy(source, config_folder, run_env, self.constants) as workdir:
                    commands = self._shell_commands(workdir, run_env)
                    deployer = Deployer(commands, run_env, self.constants)

                    with bastion_tunnel(config.bastion, run_env):
                        return deployer.run(config, workdir)


__all__ = ["DeploymentSession", "build_run_env", "working_copy"]
