"""Configuration models for deployment plans.

These pydantic models describe both the user-authored metadata files and the
effective deployment plan produced by merging them.

Key matching:
    Config files have historically been written with Go-style keys
    (``ReleaseName``, ``insteadOf``, ``RenderEngine``) as well as lower-case
    ones (``namespace``, ``global_vars``). Keys are therefore matched
    case-insensitively, ignoring ``_`` and ``-``, so ``ReleaseName``,
    ``releaseName`` and ``release_name`` all populate ``release_name``.
    Unknown keys are ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _normalize_key(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


class ConfigModel(BaseModel):
    """Base model with case-insensitive key matching."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    @model_validator(mode="before")
    @classmethod
    def _match_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        lookup = {_normalize_key(name): name for name in cls.model_fields}
        matched: dict[str, Any] = {}
        for key, value in data.items():
            name = lookup.get(_normalize_key(str(key)))
            if name is not None:
                matched[name] = value
        return matched


class RenderEngine(str, Enum):
    """Strategy used to turn a folder into applied cluster resources.

    - AUTO: decide from the folder contents at deploy time
    - NONE: plain recursive manifest apply
    - HELM: helm upgrade --install with the folder as values
    - KUSTOMIZE: kubectl apply -k
    """

    AUTO = "auto"
    NONE = "none"
    HELM = "helm"
    KUSTOMIZE = "kustomize"

    @classmethod
    def _missing_(cls, value: object) -> RenderEngine | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if not normalized:
                return cls.AUTO
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class HelmChart(ConfigModel):
    """A Helm chart reference plus release settings.

    ``path`` and ``repo``/``name`` are alternative addressing modes; when both
    are set the local path wins.
    """

    repo: str = ""
    name: str = ""
    path: str = ""
    version: str = ""
    release_name: str = ""
    values_files: list[str] = Field(default_factory=list)
    post_renderer: str = ""


class DeployUnit(ConfigModel):
    """One folder to deploy, with its ordering and render settings."""

    path: str = ""
    render_engine: RenderEngine = RenderEngine.AUTO
    order: int | None = None
    helm_chart: HelmChart | None = None

    @field_validator("render_engine", mode="before")
    @classmethod
    def _render_engine_default(cls, value: Any) -> Any:
        # A blank YAML key parses to None
        return RenderEngine.AUTO if value is None else value


class MergeFolder(DeployUnit):
    """Overlay applied to the base folder list by a target.

    Either carries an ``order`` (added as a new unit) or names an existing
    unit with ``instead_of`` (replaces it, keeping its position).
    """

    instead_of: str = ""


class Bastion(ConfigModel):
    """SSH bastion used to reach the Kubernetes API server."""

    enabled: bool = False
    host: str = ""
    user: str = ""
    key_file: str = ""
    remote_portforward_host: str = ""


def _stringify_value(value: Any) -> str:
    if value is None:
        return ""
    # YAML booleans render the way they were most likely written
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _stringify_vars(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): _stringify_value(v) for k, v in value.items()}
    return value


class MetadataConfig(ConfigModel):
    """Deployment settings shared by the root metadata and its targets."""

    helm: HelmChart | None = None
    vars: dict[str, str] = Field(default_factory=dict)
    namespace: str = ""
    release_name: str = ""
    folders: list[DeployUnit] = Field(default_factory=list)
    bastion: Bastion | None = None

    @field_validator("vars", mode="before")
    @classmethod
    def _vars_as_strings(cls, value: Any) -> Any:
        return _stringify_vars(value)

    @field_validator("folders", mode="before")
    @classmethod
    def _folders_default(cls, value: Any) -> Any:
        return [] if value is None else value


class Target(MetadataConfig):
    """Named override bundle selectable at run time."""

    name: str = ""
    merge_folders: list[MergeFolder] = Field(default_factory=list)

    @field_validator("merge_folders", mode="before")
    @classmethod
    def _merge_folders_default(cls, value: Any) -> Any:
        return [] if value is None else value


class Metadata(MetadataConfig):
    """Contents of a ``metadata.yml`` file."""

    targets: list[Target] = Field(default_factory=list)

    @field_validator("targets", mode="before")
    @classmethod
    def _targets_default(cls, value: Any) -> Any:
        return [] if value is None else value


class GlobalVars(ConfigModel):
    """Contents of a ``global_vars.yml`` file."""

    global_vars: dict[str, str] = Field(default_factory=dict)

    @field_validator("global_vars", mode="before")
    @classmethod
    def _vars_as_strings(cls, value: Any) -> Any:
        return _stringify_vars(value)


class EffectiveConfig(ConfigModel):
    """The resolved deployment plan for one run.

    Attributes:
        config_repo: Git repository holding the config, empty for local runs
        config_folder: Config folder, relative to the config source root
        kubeconfig_env: Env var holding a base64 encoded kubeconfig
        kubeconfig_path: Kubeconfig file to use when it exists
        namespace: Namespace every folder is deployed to
        release_name: Default helm release name
        deploy_folders: Units to deploy, sorted by order before execution
        vars: Variables exported to templates and invoked tools
        helm: Default helm chart for helm units without their own
        bastion: Optional bastion for tunnelling to the API server
    """

    config_repo: str = ""
    config_folder: str = ""
    kubeconfig_env: str = ""
    kubeconfig_path: str = ""
    namespace: str = ""
    release_name: str = ""
    deploy_folders: list[DeployUnit] = Field(default_factory=list)
    vars: dict[str, str] = Field(default_factory=dict)
    helm: HelmChart | None = None
    bastion: Bastion | None = None

    @field_validator("vars", mode="before")
    @classmethod
    def _vars_as_strings(cls, value: Any) -> Any:
        return _stringify_vars(value)


__all__ = [
    "RenderEngine",
    "HelmChart",
    "DeployUnit",
    "MergeFolder",
    "Bastion",
    "MetadataConfig",
    "Target",
    "Metadata",
    "GlobalVars",
    "EffectiveConfig",
]
