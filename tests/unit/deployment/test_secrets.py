"""Tests for ejson secret injection."""

import base64
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kube_deploy.deployment.errors import ExecutionError
from kube_deploy.deployment.secrets import SecretInjector, build_secret


def _write_ejson(path: Path, document: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document))
    return path


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


class TestBuildSecret:
    """Tests for build_secret."""

    def test_strings_stored_as_is_others_json_encoded(self) -> None:
        secret = build_secret(
            {"data": {"password": "hunter2", "ports": [80, 443], "debug": True}},
            "db",
            "web",
        )

        assert secret["kind"] == "Secret"
        assert secret["type"] == "Opaque"
        assert secret["metadata"] == {"name": "db", "namespace": "web"}
        assert secret["data"] == {
            "password": _b64("hunter2"),
            "ports": _b64("[80, 443]"),
            "debug": _b64("true"),
        }


class TestSecretInjector:
    """Tests for SecretInjector."""

    @pytest.fixture
    def injector(self, mock_commands: MagicMock) -> SecretInjector:
        return SecretInjector(mock_commands, env={"EJSON_KEY": "private-key"})

    def test_valid_secret_is_applied_and_removed(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        document = {"_name": "db", "data": {"password": "EJ[1:encrypted]"}}
        secret_file = _write_ejson(tmp_path / "secrets" / "db.ejson", document)
        mock_commands.ejson.decrypt.return_value = json.dumps(
            {"_name": "db", "data": {"password": "hunter2"}}
        )

        applied = injector.inject_and_strip("web", tmp_path / "secrets")

        assert applied == [secret_file]
        assert not secret_file.exists()
        mock_commands.ejson.decrypt.assert_called_once_with(
            secret_file, "/opt/ejson/keys", "private-key"
        )
        secret = mock_commands.kubectl.apply_resource.call_args[0][0]
        # Blank _namespace inherits the deployment namespace
        assert secret["metadata"] == {"name": "db", "namespace": "web"}
        assert secret["data"] == {"password": _b64("hunter2")}

    def test_explicit_namespace_is_kept(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        document = {"_name": "db", "_namespace": "shared", "data": {}}
        _write_ejson(tmp_path / "db.ejson", document)
        mock_commands.ejson.decrypt.return_value = json.dumps(document)

        injector.inject_and_strip("web", tmp_path)

        secret = mock_commands.kubectl.apply_resource.call_args[0][0]
        assert secret["metadata"]["namespace"] == "shared"

    def test_blank_name_is_skipped_and_kept(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        secret_file = _write_ejson(tmp_path / "bad.ejson", {"_name": "", "data": {}})

        applied = injector.inject_and_strip("web", tmp_path)

        assert applied == []
        assert secret_file.exists()
        mock_commands.ejson.decrypt.assert_not_called()
        mock_commands.kubectl.apply_resource.assert_not_called()

    def test_blank_namespace_everywhere_is_skipped(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        secret_file = _write_ejson(tmp_path / "db.ejson", {"_name": "db", "data": {}})

        applied = injector.inject_and_strip("", tmp_path)

        assert applied == []
        assert secret_file.exists()

    def test_invalid_json_is_skipped(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        secret_file = tmp_path / "broken.ejson"
        secret_file.write_text("{not json")

        assert injector.inject_and_strip("web", tmp_path) == []
        assert secret_file.exists()

    def test_other_files_are_ignored(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        (tmp_path / "deploy.yaml").write_text("kind: Deployment\n")

        assert injector.inject_and_strip("web", tmp_path) == []
        mock_commands.kubectl.apply_resource.assert_not_called()

    def test_nested_files_in_sorted_order(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        b = _write_ejson(tmp_path / "b" / "b.ejson", {"_name": "b", "data": {}})
        a = _write_ejson(tmp_path / "a.ejson", {"_name": "a", "data": {}})
        mock_commands.ejson.decrypt.return_value = json.dumps({"data": {}})

        applied = injector.inject_and_strip("web", tmp_path)

        assert applied == [a, b]

    def test_decrypt_failure_propagates(
        self, injector: SecretInjector, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        secret_file = _write_ejson(tmp_path / "db.ejson", {"_name": "db", "data": {}})
        mock_commands.ejson.decrypt.side_effect = ExecutionError("decrypt failed")

        with pytest.raises(ExecutionError):
            injector.inject_and_strip("web", tmp_path)

        assert secret_file.exists()


class TestKeyMaterial:
    """Tests for ejson key lookup."""

    def test_key_read_from_key_path(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        key_file = tmp_path / "key"
        key_file.write_text("from-file\n")

        injector = SecretInjector(mock_commands, env={"EJSON_KEY_PATH": str(key_file)})

        assert injector.private_key() == "from-file"

    def test_key_env_wins_over_key_path(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        injector = SecretInjector(
            mock_commands,
            env={"EJSON_KEY": "from-env", "EJSON_KEY_PATH": str(tmp_path / "missing")},
        )

        assert injector.private_key() == "from-env"

    def test_key_is_read_once(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        key_file = tmp_path / "key"
        key_file.write_text("first")
        injector = SecretInjector(mock_commands, env={"EJSON_KEY_PATH": str(key_file)})

        injector.private_key()
        key_file.write_text("second")

        assert injector.private_key() == "first"

    def test_unreadable_key_path_fails(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        injector = SecretInjector(
            mock_commands, env={"EJSON_KEY_PATH": str(tmp_path / "missing")}
        )

        with pytest.raises(ExecutionError):
            injector.private_key()

    def test_no_key_uses_keydir(self, mock_commands: MagicMock) -> None:
        injector = SecretInjector(mock_commands, env={"EJSON_KEYDIR": "/keys"})

        assert injector.private_key() is None
        assert injector.keydir == "/keys"
