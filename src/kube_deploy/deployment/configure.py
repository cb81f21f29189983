"""Configuration resolution.

This module layers the pieces of a deployment config into one effective plan:

1. ``metadata.yml`` (or the file named by ``KUBE_DEPLOY_METADATA_FILE``)
2. ``global_vars.yml`` merged into the metadata vars with lowest precedence
3. the selected target's overrides and merge folders
4. the values supplied on the command line

All paths are relative to the config source root.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError

from kube_deploy.infra.source import ConfigSource

from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .errors import ConfigurationError
from .folders import assemble, join_folder, merge_overlays
from .merge import merge_configs, merge_helm_chart
from .models import EffectiveConfig, GlobalVars, HelmChart, Metadata, MetadataConfig, Target

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_model(
    source: ConfigSource,
    model: type[ModelT],
    paths: Sequence[str],
) -> ModelT | None:
    """Parse the first existing file among ``paths`` into ``model``.

    Returns:
        The parsed model, or None when none of the files exist

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    for path in paths:
        if not path:
            continue

        content = source.read_file(path)
        if content is None:
            continue

        logger.info(f"loading config from {path}")
        try:
            data: Any = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML in {path}", details=str(e)) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid config in {path}: expected a mapping")

        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config in {path}", details=str(e)) from e

    return None


def load_metadata(
    source: ConfigSource,
    config_folder: str,
    env: Mapping[str, str],
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> Metadata | None:
    """Load the metadata file for a config folder, if there is one."""
    return _read_model(
        source,
        Metadata,
        [
            env.get(constants.METADATA_FILE_ENV, ""),
            join_folder(config_folder, constants.METADATA_FILE),
        ],
    )


def load_global_vars(
    source: ConfigSource,
    config_folder: str,
    env: Mapping[str, str],
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> dict[str, str]:
    """Load global variables from the source root or the config folder."""
    global_vars = _read_model(
        source,
        GlobalVars,
        [
            env.get(constants.GLOBAL_VARS_ENV, ""),
            constants.GLOBAL_VARS_FILE,
            join_folder(config_folder, constants.GLOBAL_VARS_FILE),
        ],
    )
    return global_vars.global_vars if global_vars else {}


def find_target(target_name: str, targets: Sequence[Target]) -> Target | None:
    """Look up a target by name.

    Returns:
        The target, or None when ``target_name`` is empty

    Raises:
        ConfigurationError: If no target has that name
    """
    if not target_name:
        return None

    for target in targets:
        if target.name == target_name:
            return target

    known = ", ".join(t.name for t in targets) or "none"
    raise ConfigurationError(
        f"unable to find target {target_name} in target list",
        details=f"Known targets: {known}",
    )


def metadata_to_config(
    source: ConfigSource,
    config_folder: str,
    metadata: MetadataConfig,
    *,
    default_chart: HelmChart | None,
    use_convention_defaults: bool,
) -> EffectiveConfig:
    """Convert one metadata block into a partial effective config."""
    return EffectiveConfig(
        config_folder=config_folder,
        namespace=metadata.namespace,
        release_name=metadata.release_name,
        vars=dict(metadata.vars),
        helm=metadata.helm,
        bastion=metadata.bastion,
        deploy_folders=assemble(
            source,
            config_folder,
            metadata.folders,
            default_chart,
            use_convention_defaults,
        ),
    )


def resolve(
    source: ConfigSource,
    config_folder: str,
    target_name: str = "",
    start: EffectiveConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> EffectiveConfig:
    """Resolve the effective deployment config for a config folder.

    Args:
        source: Config source holding the folder
        config_folder: Config folder, relative to the source root
        target_name: Target to apply, empty for none
        start: Values supplied by the caller; they win over file values
        env: Environment used to look up override file paths

    Returns:
        The merged EffectiveConfig

    Raises:
        ConfigurationError: If the config is invalid or the target is unknown
    """
    start = start or EffectiveConfig()
    env = os.environ if env is None else env

    metadata = load_metadata(source, config_folder, env)
    if metadata is None:
        logger.info(
            f"skipping configuring from {DEFAULT_CONSTANTS.METADATA_FILE}, "
            f"{join_folder(config_folder, DEFAULT_CONSTANTS.METADATA_FILE)} does not exist"
        )
        if target_name:
            logger.warning(f"ignoring target {target_name}, there is no metadata file")
        default = EffectiveConfig(
            config_folder=config_folder,
            vars=load_global_vars(source, config_folder, env),
            deploy_folders=assemble(source, config_folder, [], start.helm, True),
        )
        return merge_configs(start, default)

    # Global vars never override vars set in the metadata
    metadata_vars = dict(load_global_vars(source, config_folder, env))
    metadata_vars.update(metadata.vars)
    metadata = metadata.model_copy(update={"vars": metadata_vars})

    target = find_target(target_name, metadata.targets)

    # Units inherit the same default chart the plan reports: CLI over
    # target over metadata
    file_chart = metadata.helm
    if target is not None:
        file_chart = merge_helm_chart(target.helm, file_chart)
    default_chart = merge_helm_chart(start.helm, file_chart)

    resolved = metadata_to_config(
        source,
        config_folder,
        metadata,
        default_chart=default_chart,
        use_convention_defaults=True,
    )

    if target is not None:
        logger.info(f"found target overrides for {target_name}")
        target_config = metadata_to_config(
            source,
            config_folder,
            target,
            default_chart=default_chart,
            use_convention_defaults=False,
        )

        if not target_config.deploy_folders:
            target_config = target_config.model_copy(
                update={
                    "deploy_folders": merge_overlays(
                        config_folder,
                        default_chart,
                        resolved.deploy_folders,
                        target.merge_folders,
                    )
                }
            )
        elif target.merge_folders:
            raise ConfigurationError(
                f"cannot set mergeFolders and folders in the same target {target_name}"
            )

        resolved = merge_configs(target_config, resolved)

    return merge_configs(start, resolved)


__all__ = [
    "load_metadata",
    "load_global_vars",
    "find_target",
    "metadata_to_config",
    "resolve",
]
