"""Ejson command abstractions.

Decryption is delegated to the `ejson` binary. Key material, when supplied,
is passed on stdin so it never appears in the process list.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ExecutionError

if TYPE_CHECKING:
    from .runner import CommandRunner


class EjsonCommands:
    """Ejson-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize ejson commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def decrypt(self, file_path: Path, keydir: str, key: str | None = None) -> str:
        """Decrypt an ejson file and return the plaintext JSON document.

        Args:
            file_path: Path to the encrypted `.ejson` file
            keydir: Directory holding private keys named after public keys
            key: Private key material; overrides the keydir lookup

        Returns:
            Decrypted JSON text

        Raises:
            ExecutionError: If ejson cannot decrypt the file
        """
        cmd = ["ejson", "--keydir", keydir, "decrypt"]
        if key:
            cmd.append("--key-from-stdin")
        cmd.append(str(file_path))

        result = self._runner.run(cmd, input=key, capture_output=True)
        if not result.success:
            raise ExecutionError(
                f"Failed to decrypt ejson file {file_path}",
                details=result.stderr.strip() or None,
            )
        return result.stdout
