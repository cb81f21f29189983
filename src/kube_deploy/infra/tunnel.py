"""SSH bastion tunnel for reaching the Kubernetes API server.

Forwards the API server port on localhost through a bastion host with a
background ``ssh -N -L`` process for the duration of a deployment run.
"""

from __future__ import annotations

import subprocess
import time
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from kube_deploy.deployment.constants import DEFAULT_CONSTANTS
from kube_deploy.deployment.errors import KubeDeployError
from kube_deploy.deployment.models import Bastion

DEFAULT_REMOTE_HOST = "localhost"


class TunnelError(KubeDeployError):
    """Error during tunnel setup."""


def default_key_file(home: Path) -> str:
    """Return the only private key in ``~/.ssh``, if there is exactly one."""
    keys = [
        p for p in sorted((home / ".ssh").glob("id_*")) if p.suffix != ".pub" and p.is_file()
    ]
    return str(keys[0]) if len(keys) == 1 else ""


class SSHTunnel:
    """A background ssh port forward.

    User and identity default to what ssh resolves from ``~/.ssh/config``.
    When no key file is configured and ``~/.ssh`` holds exactly one private
    ``id_*`` key, that key is passed explicitly.
    """

    def __init__(
        self,
        bastion: Bastion,
        *,
        local_port: int = DEFAULT_CONSTANTS.API_SERVER_PORT,
        remote_port: int = DEFAULT_CONSTANTS.API_SERVER_PORT,
        home: Path | None = None,
        env: Mapping[str, str] | None = None,
        wait_time: float = 1.0,
    ) -> None:
        self.bastion = bastion
        self.local_port = local_port
        self.remote_port = remote_port
        self.home = home or Path.home()
        self.env = dict(env) if env is not None else None
        self.wait_time = wait_time
        self.process: subprocess.Popen[str] | None = None

    @property
    def forward_spec(self) -> str:
        remote_host = self.bastion.remote_portforward_host or DEFAULT_REMOTE_HOST
        return f"{self.local_port}:{remote_host}:{self.remote_port}"

    def command(self) -> list[str]:
        """Build the ssh command line for this tunnel."""
        cmd = [
            "ssh",
            "-N",
            "-o",
            "ExitOnForwardFailure=yes",
            "-L",
            self.forward_spec,
        ]

        if self.bastion.user:
            cmd.extend(["-l", self.bastion.user])

        key_file = self.bastion.key_file or default_key_file(self.home)
        if key_file:
            cmd.extend(["-i", key_file])

        cmd.append(self.bastion.host)
        return cmd

    def start(self) -> None:
        """Start the tunnel.

        Raises:
            TunnelError: If ssh cannot be started or exits immediately
        """
        cmd = self.command()
        logger.info(f"Starting ssh tunnel through {self.bastion.host}: {self.forward_spec}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                env=self.env,
                text=True,
            )
        except OSError as e:
            raise TunnelError(f"Failed to start ssh: {e}") from e

        # Give ssh time to connect and set up the forward
        time.sleep(self.wait_time)

        if process.poll() is not None:
            _, stderr = process.communicate()
            raise TunnelError(f"ssh tunnel failed to start: {stderr.strip()}")

        self.process = process

    def stop(self) -> None:
        """Stop the tunnel if it is running."""
        process = self.process
        if process is None:
            return

        if process.poll() is None:
            logger.debug("Stopping ssh tunnel...")
            process.terminate()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()

        self.process = None
        logger.debug("ssh tunnel stopped")


@contextmanager
def bastion_tunnel(
    bastion: Bastion | None,
    env: Mapping[str, str] | None = None,
    *,
    home: Path | None = None,
    wait_time: float = 1.0,
) -> Generator[SSHTunnel | None]:
    """Run the enclosed block with the bastion tunnel up, when one is enabled.

    A tunnel that fails to start is logged and the block runs anyway.

    Example:
        >>> with bastion_tunnel(config.bastion, run_env):
        ...     deployer.run(config, workdir)
    """
    if bastion is None or not bastion.enabled or not bastion.host:
        logger.info("bastion ssh connection disabled")
        yield None
        return

    tunnel = SSHTunnel(bastion, home=home, env=env, wait_time=wait_time)
    try:
        tunnel.start()
    except TunnelError as e:
        logger.warning(f"error starting ssh tunnel: {e.message}")

    try:
        yield tunnel
    finally:
        tunnel.stop()


__all__ = ["SSHTunnel", "TunnelError", "bastion_tunnel", "default_key_file"]
