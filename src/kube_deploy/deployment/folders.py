"""Folder assembly for deployment plans.

Turns a metadata description (explicit folder list, convention folders, or
merge-folder overlays) into an ordered list of deploy units. Unit paths are
POSIX paths relative to the config source root, e.g. ``apps/web/predeploy``.
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence

from loguru import logger

from kube_deploy.infra.source import ConfigSource

from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .errors import ConfigurationError
from .models import DeployUnit, HelmChart, MergeFolder, RenderEngine


def join_folder(root_folder: str, path: str) -> str:
    """Join a folder name onto the config folder and normalize the result."""
    return posixpath.normpath(posixpath.join(root_folder, path))


def _with_defaults(
    unit: DeployUnit,
    *,
    path: str,
    order: int,
    default_chart: HelmChart | None,
) -> DeployUnit:
    chart = unit.helm_chart
    if chart is None and unit.render_engine == RenderEngine.HELM and default_chart:
        chart = default_chart.model_copy(deep=True)

    return DeployUnit(
        path=path,
        render_engine=unit.render_engine,
        order=unit.order if unit.order is not None else order,
        helm_chart=chart,
    )


def assemble(
    source: ConfigSource,
    root_folder: str,
    explicit_folders: Sequence[DeployUnit],
    default_chart: HelmChart | None,
    use_convention_defaults: bool,
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> list[DeployUnit]:
    """Build the deploy unit list for one metadata block.

    Args:
        source: Config source used to probe for convention folders
        root_folder: Config folder, relative to the source root
        explicit_folders: Folders listed in the metadata, possibly empty
        default_chart: Chart inherited by helm units without one
        use_convention_defaults: Probe for convention folders when no
            explicit folders are given

    Returns:
        Deploy units in declaration (or probe) order
    """
    if explicit_folders:
        return [
            _with_defaults(
                folder,
                path=join_folder(root_folder, folder.path),
                order=position,
                default_chart=default_chart,
            )
            for position, folder in enumerate(explicit_folders)
        ]

    if not use_convention_defaults:
        return []

    units: list[DeployUnit] = []
    for convention in constants.CONVENTION_FOLDERS:
        path = join_folder(root_folder, convention.name)
        if not source.is_dir(path):
            continue

        logger.debug(f"found convention folder {path}")
        units.append(
            _with_defaults(
                DeployUnit(render_engine=convention.render_engine),
                path=path,
                order=convention.order,
                default_chart=default_chart,
            )
        )

    return units


def merge_overlays(
    root_folder: str,
    default_chart: HelmChart | None,
    units: Sequence[DeployUnit],
    overlays: Sequence[MergeFolder],
) -> list[DeployUnit]:
    """Apply a target's merge folders onto a base unit list.

    Overlays carrying an order are appended as new units. Overlays carrying
    ``instead_of`` replace the matching unit's render engine and chart while
    keeping its order (and path, unless the overlay sets one).

    Args:
        root_folder: Config folder, relative to the source root
        default_chart: Chart inherited by helm units without one
        units: Base units; not modified
        overlays: Merge folders in declaration order

    Returns:
        A new unit list

    Raises:
        ConfigurationError: If an overlay sets neither order nor instead_of,
            or references a path that is not in the list
    """
    merged = [unit.model_copy(deep=True) for unit in units]

    for index, overlay in enumerate(overlays):
        if overlay.order is not None:
            path = join_folder(root_folder, overlay.path)
            merged.append(
                _with_defaults(
                    overlay,
                    path=path,
                    order=overlay.order,
                    default_chart=default_chart,
                )
            )
            continue

        if not overlay.instead_of:
            raise ConfigurationError(
                f"merge folder[{index}] must set order or insteadOf"
            )

        search_path = join_folder(root_folder, overlay.instead_of)
        found = False
        for position, unit in enumerate(merged):
            if unit.path != search_path:
                continue

            path = join_folder(root_folder, overlay.path) if overlay.path else unit.path
            merged[position] = _with_defaults(
                overlay,
                path=path,
                order=unit.order if unit.order is not None else 0,
                default_chart=default_chart,
            )
            found = True

        if not found:
            raise ConfigurationError(
                f"unable to find referenced path {overlay.instead_of}",
                details=f"No deploy folder matches {search_path}",
            )

    return merged


__all__ = ["assemble", "merge_overlays", "join_folder"]
