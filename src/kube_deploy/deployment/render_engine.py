"""Render-engine resolution for deploy units.

Every unit is deployed by exactly one strategy. ``auto`` never survives
resolution: it is narrowed to helm, kustomize or plain manifests by looking
at the unit's chart and the folder contents.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .errors import ConfigurationError
from .models import DeployUnit, HelmChart, RenderEngine


@dataclass(frozen=True)
class PlainManifests:
    """Apply every manifest in the folder recursively."""


@dataclass(frozen=True)
class HelmRelease:
    """Install or upgrade a helm release using the folder as values."""

    chart: HelmChart


@dataclass(frozen=True)
class Kustomize:
    """Build and apply the folder's kustomization."""


Render = PlainManifests | HelmRelease | Kustomize


def has_kustomization(folder: Path, constants: DeploymentConstants = DEFAULT_CONSTANTS) -> bool:
    return any((folder / name).is_file() for name in constants.KUSTOMIZATION_FILES)


def resolve_render_engine(
    unit: DeployUnit,
    folder: Path,
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> Render:
    """Decide how a unit is deployed.

    Explicit engines win outright. For ``auto`` a chart selects helm, a
    kustomization file selects kustomize, anything else is plain manifests.

    Args:
        unit: The deploy unit
        folder: The unit's folder in the working copy

    Returns:
        The resolved render strategy

    Raises:
        ConfigurationError: If the unit is helm but has no chart
    """
    engine = unit.render_engine

    if engine == RenderEngine.HELM:
        if unit.helm_chart is None:
            raise ConfigurationError(
                f"helm render engine requires a helm chart: {unit.path}",
                details="Set helmChart on the folder or a default helm chart in metadata",
            )
        return HelmRelease(unit.helm_chart)

    if engine == RenderEngine.KUSTOMIZE:
        return Kustomize()

    if engine == RenderEngine.NONE:
        return PlainManifests()

    if unit.helm_chart is not None:
        return HelmRelease(unit.helm_chart)
    if has_kustomization(folder, constants):
        return Kustomize()
    return PlainManifests()


__all__ = [
    "PlainManifests",
    "HelmRelease",
    "Kustomize",
    "Render",
    "has_kustomization",
    "resolve_render_engine",
]
