"""Tests for bwgate.config: XDG paths, atomic writes, precedence and credential sources."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from bwgate.config import (
    _atomic_write,
    config_file_path,
    get_config_dir,
    load_config_file,
    resolve_config,
    resolve_credential,
    save_config,
)
from bwgate.exceptions import ConfigError
from bwgate.models import CredentialKind, GatewayConfig, RequestConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestConfigDir:
    def test_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("bwgate.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "bwgate"
        assert result.is_dir()

    def test_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("bwgate.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "bwgate"

    def test_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("bwgate.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".bwgate"

    def test_config_env_override(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = isolated_config / "elsewhere.json"
        monkeypatch.setenv("BWGATE_CONFIG", str(target))

        assert config_file_path() == target


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "out.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}'

    def test_no_temp_files_left_on_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = tmp_path / "out.json"

        def boom(*args: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("bwgate.config.os.replace", boom)
        with pytest.raises(OSError, match="disk full"):
            _atomic_write(target, "data")

        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------


class TestConfigFile:
    def test_missing_file_is_empty(self, isolated_config: Path) -> None:
        assert load_config_file() == {}

    def test_invalid_json_raises(self, isolated_config: Path) -> None:
        path = config_file_path()
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config_file()

    def test_non_object_raises(self, isolated_config: Path) -> None:
        _write_json(config_file_path(), [1, 2])
        with pytest.raises(ConfigError, match="JSON object"):
            load_config_file()

    def test_save_and_resolve_roundtrip(self, isolated_config: Path) -> None:
        config = GatewayConfig(
            scope="api",
            credential_kind=CredentialKind.USER,
            client_id_source="env:BW_ID",
            client_secret_source="file:~/.bw/secret",
            request=RequestConfig(max_retries=5),
        )
        path = save_config(config)

        assert path == config_file_path()
        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["client_id_source"] == "env:BW_ID"
        assert "subscription_key_source" not in stored
        assert resolve_config() == config


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        config = resolve_config()
        assert config.request.base_url == "https://api.bitwarden.com"
        assert config.identity_url == "https://identity.bitwarden.com/connect/token"
        assert config.scope == "api.organization"
        assert config.request.max_retries == 3
        assert config.request.initial_retry_delay == 3
        assert config.client_id_source is None

    def test_file_layer(self, isolated_config: Path) -> None:
        _write_json(config_file_path(), {"scope": "api", "request": {"timeout": 10}})
        config = resolve_config()
        assert config.scope == "api"
        assert config.request.timeout == 10
        assert config.request.max_retries == 3

    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(
            config_file_path(),
            {"request": {"base_url": "https://file.example.com", "timeout": 10}},
        )
        monkeypatch.setenv("BWGATE_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("BWGATE_MAX_RETRIES", "7")

        config = resolve_config()
        assert config.request.base_url == "https://env.example.com"
        assert config.request.max_retries == 7
        assert config.request.timeout == 10

    def test_secret_env_vars_become_env_sources(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BWGATE_CLIENT_ID", "organization.abc")
        monkeypatch.setenv("BWGATE_CLIENT_SECRET", "shh")

        config = resolve_config()
        assert config.client_id_source == "env:BWGATE_CLIENT_ID"
        assert config.client_secret_source == "env:BWGATE_CLIENT_SECRET"
        assert config.subscription_key_source is None

    def test_overrides_win(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BWGATE_SCOPE", "api")
        config = resolve_config(scope="api.organization", request={"max_retries": 0})
        assert config.scope == "api.organization"
        assert config.request.max_retries == 0

    def test_none_overrides_ignored(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BWGATE_SCOPE", "api")
        assert resolve_config(scope=None).scope == "api"

    def test_invalid_values_raise_config_error(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BWGATE_MAX_RETRIES", "many")
        with pytest.raises(ConfigError, match="Invalid bwgate configuration"):
            resolve_config()


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BW_TEST_SECRET", "abc")
        assert resolve_credential("env:BW_TEST_SECRET") == "abc"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("BW_TEST_SECRET", raising=False)
        with pytest.raises(ConfigError, match="BW_TEST_SECRET"):
            resolve_credential("env:BW_TEST_SECRET")

    def test_file_is_stripped(self, tmp_path: Path) -> None:
        secret = tmp_path / "secret"
        secret.write_text("  s3cret\n", encoding="utf-8")
        assert resolve_credential(f"file:{secret}") == "s3cret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_literal_value(self) -> None:
        assert resolve_credential("value:organization.abc") == "organization.abc"

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: False)
        with pytest.raises(ConfigError, match="not a TTY"):
            resolve_credential("prompt")

    def test_prompt_with_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: True)
        monkeypatch.setattr("getpass.getpass", lambda prompt: "typed")
        assert resolve_credential("prompt") == "typed"

    def test_unknown_source(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("keyring:svc:acct")
