"""Deployment engine.

This package resolves a config folder into an effective deployment plan
and executes it with kubectl, helm and ejson:

- models / merge / folders / configure: plan resolution
- render_engine: helm, kustomize or plain manifests per folder
- secrets: ejson secret injection
- driver: ordered execution of the plan
- session: resource lifecycle for a full run
- shell_commands: typed wrappers around the external tools
"""

from .driver import Deployer, DeploymentReport, DeploymentState
from .errors import (
    ConfigurationError,
    ExecutionError,
    KubeDeployError,
    SecretError,
    SourceError,
)
from .models import EffectiveConfig

__all__ = [
    "Deployer",
    "DeploymentReport",
    "DeploymentState",
    "EffectiveConfig",
    "KubeDeployError",
    "ConfigurationError",
    "SourceError",
    "SecretError",
    "ExecutionError",
]
