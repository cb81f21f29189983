"""Config sources.

A config source is a read-only, path-addressed view over the tree holding the
deployment config. Paths are POSIX strings relative to the source root.

Two sources exist:

- a local directory, rooted at the enclosing git top-level so repo-level
  files such as ``global_vars.yml`` are reachable
- a git repository, shallow-cloned into a temporary directory that is
  removed when the source is closed
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from loguru import logger

from kube_deploy.deployment.constants import DEFAULT_CONSTANTS
from kube_deploy.deployment.errors import SourceError
from kube_deploy.deployment.shell_commands import GitCommands

FileProcessor = Callable[[Path, str], str]


class ConfigSource(Protocol):
    """Read-only access to a config tree."""

    def read_file(self, path: str) -> bytes | None: ...

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def copy_tree(self, folder: str, dest: Path, processor: FileProcessor) -> None: ...


class LocalConfigSource:
    """Config source backed by a directory on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def read_file(self, path: str) -> bytes | None:
        """Read a file, returning None when it does not exist."""
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def copy_tree(self, folder: str, dest: Path, processor: FileProcessor) -> None:
        """Copy a folder into ``dest``, passing text through ``processor``.

        The folder's position relative to the source root is kept, so
        ``apps/web`` lands in ``dest/apps/web``. File modes are preserved.

        Args:
            folder: Folder to copy, relative to the source root
            dest: Destination root directory
            processor: Called with the destination path and file text;
                returns the text to write
        """
        src_root = self._resolve(folder)
        for src in sorted(src_root.rglob("*")):
            target = dest / src.relative_to(self.root)
            if src.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                content = src.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                # Binary files are copied untouched
                shutil.copyfile(src, target)
            else:
                target.write_text(processor(target, content), encoding="utf-8")
            shutil.copymode(src, target)

        # Empty config folders still exist in the working copy
        (dest / src_root.relative_to(self.root)).mkdir(parents=True, exist_ok=True)


def find_git_root(working_dir: Path) -> Path | None:
    """Walk up from ``working_dir`` looking for a ``.git`` entry."""
    directory = working_dir.resolve()
    for candidate in [directory, *directory.parents]:
        if (candidate / ".git").exists():
            return candidate
    return None


def open_local_source(config_folder: Path) -> tuple[LocalConfigSource, str]:
    """Open a local config folder.

    Args:
        config_folder: Path to the config folder on disk

    Returns:
        The source and the config folder path relative to its root

    Raises:
        SourceError: If the folder does not exist or is not a directory
    """
    if not config_folder.is_dir():
        raise SourceError(
            f"config folder either doesn't exist or is not a directory: {config_folder}"
        )

    folder = config_folder.resolve()
    root = find_git_root(folder) or folder
    relative = folder.relative_to(root).as_posix()
    logger.debug(f"using config source root {root}")
    return LocalConfigSource(root), relative


@contextmanager
def open_config_source(
    config_folder: str,
    config_repo: str = "",
    git: GitCommands | None = None,
) -> Generator[tuple[ConfigSource, str]]:
    """Open the config source for a run.

    When ``config_repo`` is set the repository is cloned and
    ``config_folder`` is taken relative to the repository root. Otherwise
    ``config_folder`` is a local path.

    Args:
        config_folder: Config folder path
        config_repo: Optional git repository URL
        git: Git commands used for cloning

    Yields:
        The source and the config folder path relative to its root

    Raises:
        SourceError: If the clone fails or the folder is missing
    """
    if not config_repo:
        yield open_local_source(Path(config_folder))
        return

    if git is None:
        raise SourceError("A git client is required to clone config repositories")

    clone_dir = Path(tempfile.mkdtemp(prefix=DEFAULT_CONSTANTS.CLONE_PREFIX))
    try:
        logger.info(f"Cloning config repo {config_repo}")
        git.clone(config_repo, clone_dir / "repo")
        source = LocalConfigSource(clone_dir / "repo")

        relative = Path(config_folder.lstrip("/")).as_posix()
        if not source.is_dir(relative):
            raise SourceError(
                "config folder either doesn't exist or is not a directory: "
                f"{config_folder}"
            )
        yield source, relative
    finally:
        shutil.rmtree(clone_dir, ignore_errors=True)


__all__ = [
    "ConfigSource",
    "LocalConfigSource",
    "FileProcessor",
    "find_git_root",
    "open_local_source",
    "open_config_source",
]
