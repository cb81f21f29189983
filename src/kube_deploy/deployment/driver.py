"""Deployment driver.

Turns a resolved plan into a sequence of external apply operations:

1. Create the namespace
2. Sort deploy units by order (stable, unset counts as 0)
3. For each unit, resolve its render engine and dispatch it:
   - helm: register the repo and ``helm upgrade --install``
   - kustomize: inject ejson secrets, then ``kubectl apply -k``
   - plain: inject ejson secrets, then ``kubectl apply -R -f``

A unit whose folder is missing from the working copy ends the run early,
successfully. The first failure aborts the run; nothing is rolled back.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import assert_never

from loguru import logger

from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .errors import ConfigurationError, ExecutionError, KubeDeployError
from .helm_release import HelmReleaseManager
from .models import DeployUnit, EffectiveConfig, RenderEngine
from .render_engine import HelmRelease, Kustomize, PlainManifests, Render, resolve_render_engine
from .secrets import SecretInjector
from .shell_commands import ShellCommands


class DeploymentState(str, Enum):
    """Where a deployment run currently is."""

    IDLE = "idle"
    NAMESPACE_CREATING = "namespace_creating"
    PROBING = "probing"
    DISPATCHING = "dispatching"
    SECRET_INJECTING = "secret_injecting"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DispatchedUnit:
    """A unit the driver handed to a render strategy."""

    unit: DeployUnit
    render: Render


@dataclass
class DeploymentReport:
    """Progress record of one deployment run.

    Attributes:
        namespace: Namespace the run deployed to
        state: Current (or final) state of the run
        dispatched: Units dispatched, in dispatch order
        stopped_at: Path of the missing folder that ended the run early
        error: The error that failed the run
    """

    namespace: str = ""
    state: DeploymentState = DeploymentState.IDLE
    dispatched: list[DispatchedUnit] = field(default_factory=list)
    stopped_at: str | None = None
    error: KubeDeployError | None = None


def sort_units(units: Sequence[DeployUnit]) -> list[DeployUnit]:
    """Return units stably sorted by order; an unset order counts as 0."""
    return sorted(units, key=lambda unit: unit.order or 0)


def _has_entries(folder: Path) -> bool:
    if folder.is_file():
        return True
    return any(folder.iterdir())


class Deployer:
    """Executes a resolved deployment plan against the cluster.

    Attributes:
        commands: Shell command executor
        secrets: Ejson secret injector
        helm_release: Helm release manager
        report: Record of the last run
    """

    def __init__(
        self,
        commands: ShellCommands,
        env: Mapping[str, str],
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            commands: Shell command executor
            env: Run environment, used for ejson key lookup
            constants: Optional deployment constants
        """
        self.commands = commands
        self.constants = constants or DEFAULT_CONSTANTS
        self.secrets = SecretInjector(commands, env, self.constants)
        self.helm_release = HelmReleaseManager(commands)
        self.report = DeploymentReport()

    def _set_state(self, state: DeploymentState) -> None:
        self.report.state = state

    def run(self, config: EffectiveConfig, workdir: Path) -> DeploymentReport:
        """Deploy every unit of a plan.

        Args:
            config: The resolved plan
            workdir: Working copy root; unit paths are relative to it

        Returns:
            The deployment report

        Raises:
            KubeDeployError: On the first failing step
        """
        self.report = DeploymentReport(namespace=config.namespace)
        try:
            self._run(config, workdir)
        except KubeDeployError as e:
            self.report.error = e
            self._set_state(DeploymentState.FAILED)
            raise
        return self.report

    def _validate(self, config: EffectiveConfig) -> None:
        for unit in config.deploy_folders:
            if unit.render_engine == RenderEngine.HELM and unit.helm_chart is None:
                raise ConfigurationError(
                    f"helm chart can not be empty when helm render engine is set: {unit.path}",
                    details="Set helmChart on the folder or a default helm chart in metadata",
                )

    def _run(self, config: EffectiveConfig, workdir: Path) -> None:
        self._validate(config)

        self._set_state(DeploymentState.NAMESPACE_CREATING)
        logger.info(f"creating namespace {config.namespace}")
        try:
            self.commands.kubectl.create_namespace(config.namespace)
        except ExecutionError as e:
            raise ExecutionError(
                f"error while creating namespace {config.namespace}", details=e.details
            ) from e

        for unit in sort_units(config.deploy_folders):
            self._set_state(DeploymentState.PROBING)
            folder = workdir / unit.path
            if not folder.exists():
                logger.info(f"folder {unit.path} not found")
                self.report.stopped_at = unit.path
                break

            try:
                self._deploy_unit(config, unit, folder)
            except ExecutionError as e:
                if e.path is not None:
                    raise
                raise ExecutionError(e.message, details=e.details, path=unit.path) from e

        self._set_state(DeploymentState.DONE)

    def _deploy_unit(self, config: EffectiveConfig, unit: DeployUnit, folder: Path) -> None:
        render = resolve_render_engine(unit, folder, self.constants)
        logger.info(
            f"deploying folder {unit.path} using {type(render).__name__} as the render engine"
        )

        self._set_state(DeploymentState.DISPATCHING)
        self.report.dispatched.append(DispatchedUnit(unit=unit, render=render))

        if isinstance(render, HelmRelease):
            self._set_state(DeploymentState.APPLYING)
            self.helm_release.deploy(
                config.namespace,
                folder,
                render.chart,
                config.release_name or config.namespace,
            )
        elif isinstance(render, Kustomize):
            self._inject_secrets(config.namespace, folder)
            if _has_entries(folder):
                self._set_state(DeploymentState.APPLYING)
                self.commands.kubectl.apply_kustomize(folder)
        elif isinstance(render, PlainManifests):
            self._inject_secrets(config.namespace, folder)
            if _has_entries(folder):
                self._set_state(DeploymentState.APPLYING)
                self.commands.kubectl.apply_folder(folder)
        else:
            assert_never(render)

    def _inject_secrets(self, namespace: str, folder: Path) -> None:
        self._set_state(DeploymentState.SECRET_INJECTING)
        self.secrets.inject_and_strip(namespace, folder)


__all__ = [
    "Deployer",
    "DeploymentReport",
    "DeploymentState",
    "DispatchedUnit",
    "sort_units",
]
