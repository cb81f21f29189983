"""Deployment constants and configuration.

This module centralizes the magic strings, file names and environment
variable names used throughout a deployment run.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import RenderEngine


@dataclass(frozen=True)
class ConventionFolder:
    """A folder probed for when no explicit folder list is configured."""

    name: str
    order: int
    render_engine: RenderEngine = RenderEngine.AUTO


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for config resolution and deployment.

    All attributes are immutable.
    """

    # Convention folders, in probe order
    CONVENTION_FOLDERS: tuple[ConventionFolder, ...] = field(
        default_factory=lambda: (
            ConventionFolder("predeploy", 1),
            ConventionFolder("secrets", 2),
            ConventionFolder("helmvalues", 100, RenderEngine.HELM),
            ConventionFolder("postdeploy", 101),
        )
    )

    # Config file names
    METADATA_FILE: str = "metadata.yml"
    GLOBAL_VARS_FILE: str = "global_vars.yml"
    KUSTOMIZATION_FILES: tuple[str, ...] = ("kustomization.yaml", "kustomization.yml")
    SECRET_FILE_SUFFIX: str = ".ejson"

    # Environment variables
    METADATA_FILE_ENV: str = "KUBE_DEPLOY_METADATA_FILE"
    GLOBAL_VARS_ENV: str = "KUBE_DEPLOY_GLOBAL_VARS"
    EJSON_KEY_ENV: str = "EJSON_KEY"
    EJSON_KEY_PATH_ENV: str = "EJSON_KEY_PATH"
    EJSON_KEYDIR_ENV: str = "EJSON_KEYDIR"
    KUBE_CONFIG_ENV: str = "KUBE_CONFIG"

    # Ejson
    DEFAULT_EJSON_KEYDIR: str = "/opt/ejson/keys"

    # Kubernetes access
    IN_CLUSTER_SA_MOUNT: str = "/var/run/secrets/kubernetes.io/serviceaccount"
    DEFAULT_KUBECONFIG: str = "~/.kube/config"
    API_SERVER_PORT: int = 6443

    # Temp file prefixes
    WORKDIR_PREFIX: str = "kube-deploy-"
    CLONE_PREFIX: str = "kube-deploy-repo-"
    KUBECONFIG_PREFIX: str = "kube-deploy-kubeconfig-"


DEFAULT_CONSTANTS = DeploymentConstants()
