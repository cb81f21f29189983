"""Field-by-field merge of partially populated deployment models.

Every function here takes a ``dst`` and a ``src`` and returns a new value in
which ``dst`` has priority. The precedence rules per kind of field are:

- scalars: a non-empty ``dst`` value wins, otherwise ``src``
- lists: a non-empty ``dst`` list replaces ``src`` wholesale; an empty
  ``dst`` list never erases a populated ``src`` list
- maps: key-wise union, ``dst`` keys win
- nested optional models: merged recursively when both are present,
  otherwise whichever one is set

Neither argument is modified.
"""

from __future__ import annotations

from typing import TypeVar

from .models import Bastion, DeployUnit, EffectiveConfig, HelmChart

T = TypeVar("T")


def _scalar(dst: T, src: T) -> T:
    return dst if dst else src


def _list(dst: list[T], src: list[T]) -> list[T]:
    return list(dst) if dst else list(src)


def merge_vars(dst: dict[str, str], src: dict[str, str]) -> dict[str, str]:
    """Union two variable maps, keeping ``dst`` values on key conflicts."""
    merged = dict(src)
    merged.update(dst)
    return merged


def merge_helm_chart(dst: HelmChart | None, src: HelmChart | None) -> HelmChart | None:
    """Merge two optional chart definitions."""
    if dst is None:
        return src.model_copy(deep=True) if src is not None else None
    if src is None:
        return dst.model_copy(deep=True)

    return HelmChart(
        repo=_scalar(dst.repo, src.repo),
        name=_scalar(dst.name, src.name),
        path=_scalar(dst.path, src.path),
        version=_scalar(dst.version, src.version),
        release_name=_scalar(dst.release_name, src.release_name),
        values_files=_list(dst.values_files, src.values_files),
        post_renderer=_scalar(dst.post_renderer, src.post_renderer),
    )


def merge_bastion(dst: Bastion | None, src: Bastion | None) -> Bastion | None:
    """Merge two optional bastion definitions."""
    if dst is None:
        return src.model_copy() if src is not None else None
    if src is None:
        return dst.model_copy()

    return Bastion(
        enabled=dst.enabled or src.enabled,
        host=_scalar(dst.host, src.host),
        user=_scalar(dst.user, src.user),
        key_file=_scalar(dst.key_file, src.key_file),
        remote_portforward_host=_scalar(
            dst.remote_portforward_host, src.remote_portforward_host
        ),
    )


def merge_deploy_folders(
    dst: list[DeployUnit], src: list[DeployUnit]
) -> list[DeployUnit]:
    """Pick the folder list: ``dst`` when populated, otherwise ``src``."""
    return [unit.model_copy(deep=True) for unit in _list(dst, src)]


def merge_configs(dst: EffectiveConfig, src: EffectiveConfig) -> EffectiveConfig:
    """Merge two effective configs, ``dst`` taking priority.

    Args:
        dst: The higher-priority config (e.g. a target's)
        src: The lower-priority config (e.g. the root metadata's)

    Returns:
        A new EffectiveConfig
    """
    return EffectiveConfig(
        config_repo=_scalar(dst.config_repo, src.config_repo),
        config_folder=_scalar(dst.config_folder, src.config_folder),
        kubeconfig_env=_scalar(dst.kubeconfig_env, src.kubeconfig_env),
        kubeconfig_path=_scalar(dst.kubeconfig_path, src.kubeconfig_path),
        namespace=_scalar(dst.namespace, src.namespace),
        release_name=_scalar(dst.release_name, src.release_name),
        deploy_folders=merge_deploy_folders(dst.deploy_folders, src.deploy_folders),
        vars=merge_vars(dst.vars, src.vars),
        helm=merge_helm_chart(dst.helm, src.helm),
        bastion=merge_bastion(dst.bastion, src.bastion),
    )


__all__ = [
    "merge_vars",
    "merge_helm_chart",
    "merge_bastion",
    "merge_deploy_folders",
    "merge_configs",
]
