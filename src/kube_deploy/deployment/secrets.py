"""Ejson secret injection.

Folders may carry ``.ejson`` files: JSON documents whose ``data`` values are
encrypted at rest. Before a folder is applied, each file is decrypted, turned
into an Opaque ``v1/Secret`` and applied, then deleted from the working copy
so kubectl never sees it.

An ejson file must name its secret with ``_name`` and may set ``_namespace``
(defaults to the deployment namespace)::

    {
      "_public_key": "...",
      "_name": "db-credentials",
      "data": {"password": "EJ[1:...]"}
    }
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from .constants import DEFAULT_CONSTANTS, DeploymentConstants
from .errors import ExecutionError, SecretError
from .shell_commands import ShellCommands

NAME_KEY = "_name"
NAMESPACE_KEY = "_namespace"
DATA_KEY = "data"


def _load_document(text: str, file_path: Path) -> dict[str, Any]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise SecretError(f"invalid JSON in ejson file {file_path}", details=str(e)) from e

    if not isinstance(document, dict):
        raise SecretError(f"ejson file {file_path} must contain a JSON object")
    return document


def _encode_value(value: Any) -> str:
    raw = value if isinstance(value, str) else json.dumps(value)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def build_secret(
    decrypted: Mapping[str, Any],
    name: str,
    namespace: str,
) -> dict[str, Any]:
    """Build an Opaque secret manifest from a decrypted ejson document.

    String values are stored as-is, anything else is JSON encoded first.
    """
    data = decrypted.get(DATA_KEY) or {}
    if not isinstance(data, dict):
        raise SecretError(f"{DATA_KEY} in ejson secret {name} must be an object")

    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {"name": name, "namespace": namespace},
        "data": {key: _encode_value(value) for key, value in data.items()},
    }


class SecretInjector:
    """Applies the ejson secrets found in a folder and strips them out.

    Key material is looked up once per injector: ``EJSON_KEY`` if set,
    otherwise the contents of the file named by ``EJSON_KEY_PATH``. Without
    either, ejson falls back to the keys in its key directory.
    """

    def __init__(
        self,
        commands: ShellCommands,
        env: Mapping[str, str],
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the secret injector.

        Args:
            commands: Shell command executor
            env: Run environment holding the ejson key settings
            constants: Optional deployment constants
        """
        self.commands = commands
        self.env = env
        self.constants = constants or DEFAULT_CONSTANTS
        self._key: str | None = None
        self._key_loaded = False

    @property
    def keydir(self) -> str:
        return self.env.get(self.constants.EJSON_KEYDIR_ENV) or self.constants.DEFAULT_EJSON_KEYDIR

    def private_key(self) -> str | None:
        """Return the ejson private key, reading it on first use.

        Raises:
            ExecutionError: If the key file cannot be read
        """
        if self._key_loaded:
            return self._key

        key = self.env.get(self.constants.EJSON_KEY_ENV, "")
        key_path = self.env.get(self.constants.EJSON_KEY_PATH_ENV, "")
        if not key and key_path:
            try:
                key = Path(key_path).read_text(encoding="utf-8").strip()
            except OSError as e:
                raise ExecutionError(f"Failed to read ejson key file {key_path}: {e}") from e

        self._key = key or None
        self._key_loaded = True
        return self._key

    def find_secret_files(self, folder: Path) -> list[Path]:
        """List the ejson files under a folder recursively, sorted."""
        return sorted(
            p for p in folder.rglob(f"*{self.constants.SECRET_FILE_SUFFIX}") if p.is_file()
        )

    def deploy_secret(self, file_path: Path, namespace: str) -> None:
        """Decrypt one ejson file and apply it as a secret.

        Raises:
            SecretError: If the file does not describe a valid secret
            ExecutionError: If decryption or the apply fails
        """
        logger.info(f"create kubernetes secret from {file_path}")

        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ExecutionError(f"Failed to read {file_path}: {e}") from e

        document = _load_document(text, file_path)

        name = str(document.get(NAME_KEY) or "")
        if not name:
            raise SecretError(f"{NAME_KEY} can not be blank in {file_path}")

        secret_namespace = str(document.get(NAMESPACE_KEY) or "") or namespace
        if not secret_namespace:
            raise SecretError(f"{NAMESPACE_KEY} can not be blank in {file_path}")

        decrypted = self.commands.ejson.decrypt(file_path, self.keydir, self.private_key())
        secret = build_secret(_load_document(decrypted, file_path), name, secret_namespace)

        logger.info(f"creating secret {name} in {secret_namespace}")
        self.commands.kubectl.apply_resource(secret)

    def inject_and_strip(self, namespace: str, folder: Path) -> list[Path]:
        """Apply every valid ejson secret under a folder and delete its file.

        Invalid secrets are logged and skipped; their files stay in place.

        Args:
            namespace: Deployment namespace, used when a secret sets none
            folder: Folder in the working copy

        Returns:
            The files that were applied and removed

        Raises:
            ExecutionError: If a decrypt, apply or delete fails
        """
        applied: list[Path] = []
        for file_path in self.find_secret_files(folder):
            try:
                self.deploy_secret(file_path, namespace)
            except SecretError as e:
                logger.warning(f"skipping creating ejson secret: {e.message}")
                continue

            try:
                file_path.unlink()
            except OSError as e:
                raise ExecutionError(f"Failed to remove {file_path}: {e}") from e
            applied.append(file_path)

        return applied


__all__ = ["SecretInjector", "build_secret"]
