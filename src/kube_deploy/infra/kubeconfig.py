"""Kubeconfig resolution.

Picks the kubeconfig a deployment run talks to the cluster with. The first
match wins:

1. ``KUBE_CONFIG`` (``~`` and env vars expanded) when the file exists
2. the configured kubeconfig path when it exists
3. the env var named by the configured kubeconfig env, holding a base64
   encoded kubeconfig; decoded into a temp file removed after the run
4. the in-cluster service account mount; an empty path means in-cluster
5. ``~/.kube/config``
"""

from __future__ import annotations

import base64
import binascii
import os
import tempfile
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from kube_deploy.deployment.constants import DEFAULT_CONSTANTS, DeploymentConstants
from kube_deploy.deployment.errors import ConfigurationError, ExecutionError
from kube_deploy.utils.env_vars import expand_path


def _decode_to_temp_file(encoded: str, env_name: str, constants: DeploymentConstants) -> Path:
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(
            "Failed to decode base64 encoded kube config",
            details=f"Environment variable {env_name}: {e}",
        ) from e

    fd, name = tempfile.mkstemp(prefix=constants.KUBECONFIG_PREFIX)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
    except OSError as e:
        Path(name).unlink(missing_ok=True)
        raise ExecutionError(f"failed to write temp file for kube config: {e}") from e
    return Path(name)


@contextmanager
def resolve_kubeconfig(
    kubeconfig_path: str = "",
    kubeconfig_env: str = "",
    env: Mapping[str, str] | None = None,
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> Generator[str]:
    """Resolve the kubeconfig for a run.

    Args:
        kubeconfig_path: Configured kubeconfig file
        kubeconfig_env: Name of an env var holding a base64 kubeconfig
        env: Environment to read from (defaults to os.environ)
        constants: Deployment constants

    Yields:
        The kubeconfig path, or "" when running in-cluster

    Raises:
        ConfigurationError: If no kubeconfig can be found
    """
    env = os.environ if env is None else env

    from_env = env.get(constants.KUBE_CONFIG_ENV, "")
    if from_env:
        expanded = expand_path(from_env, env)
        if Path(expanded).is_file():
            logger.info(
                f"Using kube config defined in {constants.KUBE_CONFIG_ENV} "
                f"environment variable {expanded}"
            )
            yield expanded
            return

    if kubeconfig_path:
        expanded = expand_path(kubeconfig_path, env)
        if Path(expanded).is_file():
            logger.info(f"Using existing kube config found at {expanded}")
            yield expanded
            return

    encoded = env.get(kubeconfig_env, "") if kubeconfig_env else ""
    if encoded:
        logger.info(f"Creating kubeconfig from environment variable {kubeconfig_env}")
        temp_file = _decode_to_temp_file(encoded, kubeconfig_env, constants)
        try:
            yield str(temp_file)
        finally:
            temp_file.unlink(missing_ok=True)
        return

    if Path(constants.IN_CLUSTER_SA_MOUNT).exists():
        logger.info("running in cluster, using in cluster service account kube api access")
        yield ""
        return

    default_config = expand_path(constants.DEFAULT_KUBECONFIG, env)
    if Path(default_config).is_file():
        logger.info(f"using default user kube config from {default_config}")
        yield default_config
        return

    raise ConfigurationError(
        "unable to detect kube config",
        details=(
            f"Set {constants.KUBE_CONFIG_ENV}, --kubeconfig-path or --kubeconfig-env, "
            f"or create {constants.DEFAULT_KUBECONFIG}"
        ),
    )


__all__ = ["resolve_kubeconfig"]
