"""Tests for config sources."""

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import write_tree
from kube_deploy.deployment.errors import SourceError
from kube_deploy.infra.source import (
    LocalConfigSource,
    find_git_root,
    open_config_source,
    open_local_source,
)


class TestLocalConfigSource:
    """Tests for LocalConfigSource."""

    @pytest.fixture
    def source(self, make_source) -> LocalConfigSource:
        return make_source(
            {
                "app/metadata.yml": "namespace: web\n",
                "app/predeploy/b.yaml": "kind: B\n",
                "app/predeploy/nested/a.yaml": "kind: A\n",
                "app/empty/": "",
            }
        )

    def test_read_file(self, source: LocalConfigSource) -> None:
        assert source.read_file("app/metadata.yml") == b"namespace: web\n"
        assert source.read_file("/app/metadata.yml") == b"namespace: web\n"
        assert source.read_file("app/missing.yml") is None
        assert source.read_file("app/predeploy") is None

    def test_exists_and_is_dir(self, source: LocalConfigSource) -> None:
        assert source.exists("app/empty")
        assert source.is_dir("app/empty")
        assert not source.is_dir("app/metadata.yml")
        assert not source.exists("app/nope")

    def test_copy_tree_keeps_relative_position(
        self, source: LocalConfigSource, tmp_path: Path
    ) -> None:
        dest = tmp_path / "dest"

        source.copy_tree("app", dest, lambda _path, text: text.upper())

        assert (dest / "app" / "predeploy" / "nested" / "a.yaml").read_text() == "KIND: A\n"
        assert (dest / "app" / "empty").is_dir()

    def test_copy_tree_leaves_binary_files_untouched(
        self, make_tree, tmp_path: Path
    ) -> None:
        root = make_tree({"app/": ""})
        (root / "app" / "logo.png").write_bytes(b"\x89PNG\xff\xfe")
        processor = MagicMock(side_effect=lambda _path, text: text)

        LocalConfigSource(root).copy_tree("app", tmp_path / "dest", processor)

        assert (tmp_path / "dest" / "app" / "logo.png").read_bytes() == b"\x89PNG\xff\xfe"
        processor.assert_not_called()

    def test_copy_tree_preserves_mode(self, make_tree, tmp_path: Path) -> None:
        root = make_tree({"app/render.sh": "#!/bin/sh\n"})
        script = root / "app" / "render.sh"
        script.chmod(0o755)

        LocalConfigSource(root).copy_tree("app", tmp_path / "dest", lambda _p, t: t)

        mode = (tmp_path / "dest" / "app" / "render.sh").stat().st_mode
        assert mode & stat.S_IXUSR
        assert os.access(tmp_path / "dest" / "app" / "render.sh", os.X_OK)


class TestOpenLocalSource:
    """Tests for opening local config folders."""

    def test_root_is_git_top_level(self, tmp_path: Path) -> None:
        write_tree(tmp_path / "repo", {".git/": "", "deploy/app/predeploy/": ""})

        source, folder = open_local_source(tmp_path / "repo" / "deploy" / "app")

        assert source.root == (tmp_path / "repo").resolve()
        assert folder == "deploy/app"

    def test_without_git_the_folder_is_the_root(self, make_tree) -> None:
        root = make_tree({"app/predeploy/": ""})

        assert find_git_root(root / "app") is None

        source, folder = open_local_source(root / "app")

        assert source.root == (root / "app").resolve()
        assert folder == "."

    def test_missing_folder_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceError, match="doesn't exist or is not a directory"):
            open_local_source(tmp_path / "missing")

    def test_file_is_not_a_folder(self, tmp_path: Path) -> None:
        (tmp_path / "metadata.yml").write_text("")

        with pytest.raises(SourceError):
            open_local_source(tmp_path / "metadata.yml")


class TestOpenConfigSource:
    """Tests for open_config_source."""

    def test_local_folder(self, tmp_path: Path) -> None:
        write_tree(tmp_path / "repo", {".git/": "", "app/predeploy/": ""})

        with open_config_source(str(tmp_path / "repo" / "app")) as (source, folder):
            assert folder == "app"
            assert source.is_dir("app/predeploy")

    def test_remote_repo_is_cloned_and_removed(self) -> None:
        git = MagicMock()
        git.clone.side_effect = lambda _url, dest: write_tree(
            dest, {"deploy/app/predeploy/cm.yaml": "kind: ConfigMap\n"}
        )

        with open_config_source(
            "/deploy/app", "git@example.com:org/config.git", git
        ) as (source, folder):
            assert folder == "deploy/app"
            assert source.read_file("deploy/app/predeploy/cm.yaml") == b"kind: ConfigMap\n"
            clone_root = source.root

        git.clone.assert_called_once()
        assert git.clone.call_args[0][0] == "git@example.com:org/config.git"
        assert not clone_root.exists()

    def test_remote_folder_missing(self) -> None:
        git = MagicMock()
        git.clone.side_effect = lambda _url, dest: write_tree(dest, {"other/": ""})

        with pytest.raises(SourceError, match="deploy/app"):
            with open_config_source("deploy/app", "https://example.com/config.git", git):
                pass

    def test_remote_requires_git(self) -> None:
        with pytest.raises(SourceError):
            with open_config_source("app", "https://example.com/config.git"):
                pass
