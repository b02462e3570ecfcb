"""Tests for socialkit.config: XDG paths, atomic writes, services, and precedence."""

from __future__ import annotations

import json
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from socialkit.config import (
    atomic_write,
    delete_service_config,
    get_config_dir,
    get_credentials_dir,
    get_data_dir,
    list_service_ids,
    load_global_config,
    load_service_config,
    resolve_credential,
    resolve_service_id,
    save_global_config,
    save_service_config,
    service_exists,
)
from socialkit.exceptions import ConfigurationError
from socialkit.models import GlobalConfig, ServiceConfig


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "socialkit"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "socialkit"

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_data_dir() == tmp_path / ".local" / "share" / "socialkit"

    def test_credentials_dir_inside_data_dir(self, isolated_config: Path) -> None:
        assert get_credentials_dir() == isolated_config / "data" / "socialkit" / "credentials"


class TestXDGPathsFallback:
    """Non-XDG platforms (macOS, Windows) use ~/.socialkit/."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".socialkit"

    def test_data_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("socialkit.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_data_dir() == tmp_path / ".socialkit" / "data"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old content", encoding="utf-8")
        atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"

    def test_mode_applied(self, tmp_path: Path) -> None:
        target = tmp_path / "secret.json"
        atomic_write(target, "{}", mode=0o600)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("original", encoding="utf-8")
        with patch("socialkit.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                atomic_write(target, "will fail")

        assert [f.name for f in tmp_path.iterdir()] == ["test.txt"]
        assert target.read_text(encoding="utf-8") == "original"


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.default_service is None
        assert cfg.allow_login_ui is True

    def test_save_and_load(self, isolated_config: Path) -> None:
        original = GlobalConfig(default_service="facebook", allow_login_ui=False)
        save_global_config(original)
        assert load_global_config() == original

    def test_invalid_json(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{invalid json!!!", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid global config"):
            load_global_config()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class TestServices:
    def test_list_empty(self, isolated_config: Path) -> None:
        assert list_service_ids() == []

    def test_save_and_load(self, isolated_config: Path, oauth2_config: ServiceConfig) -> None:
        save_service_config(oauth2_config)

        assert service_exists("example")
        assert list_service_ids() == ["example"]
        assert load_service_config("example") == oauth2_config

    def test_saved_file_is_private_and_compact(self, isolated_config: Path, oauth2_config: ServiceConfig) -> None:
        save_service_config(oauth2_config)
        path = get_config_dir() / "services" / "example.json"

        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["protocol"] == "oauth2"
        assert "consumer_key" not in data

    def test_sorted_listing(self, isolated_config: Path, oauth2_config: ServiceConfig) -> None:
        for service_id in ("zeta", "alpha", "mid"):
            save_service_config(oauth2_config.model_copy(update={"service_id": service_id}))
        assert list_service_ids() == ["alpha", "mid", "zeta"]

    def test_load_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_service_config("ghost")

    def test_load_invalid(self, isolated_config: Path) -> None:
        path = get_config_dir() / "services" / "broken.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"service_id": "broken", "protocol": "telepathy"}))

        with pytest.raises(ConfigurationError, match="Invalid service 'broken'"):
            load_service_config("broken")

    def test_delete(self, isolated_config: Path, oauth2_config: ServiceConfig) -> None:
        save_service_config(oauth2_config)
        delete_service_config("example")
        assert not service_exists("example")

    def test_delete_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError):
            delete_service_config("ghost")

    def test_secrets_resolved_on_load(
        self, isolated_config: Path, oauth2_code_config: ServiceConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("EXAMPLE_SECRET", "from-env")
        save_service_config(oauth2_code_config.model_copy(update={"client_secret": "env:EXAMPLE_SECRET"}))

        assert load_service_config("example").client_secret == "from-env"
        assert load_service_config("example", resolve_secrets=False).client_secret == "env:EXAMPLE_SECRET"

    def test_unresolvable_secret(self, isolated_config: Path, oauth2_code_config: ServiceConfig, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISSING_SECRET", raising=False)
        save_service_config(oauth2_code_config.model_copy(update={"client_secret": "env:MISSING_SECRET"}))

        with pytest.raises(ConfigurationError, match="MISSING_SECRET"):
            load_service_config("example")


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveServiceId:
    def test_explicit_wins(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SOCIALKIT_SERVICE", "from-env")
        assert resolve_service_id("explicit") == "explicit"

    def test_env_over_global(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_global_config(GlobalConfig(default_service="from-global"))
        monkeypatch.setenv("SOCIALKIT_SERVICE", "from-env")
        assert resolve_service_id() == "from-env"

    def test_global_default(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(default_service="from-global"))
        assert resolve_service_id() == "from-global"

    def test_single_service_selected(self, isolated_config: Path, oauth2_config: ServiceConfig) -> None:
        save_service_config(oauth2_config)
        assert resolve_service_id() == "example"

    def test_ambiguous(self, isolated_config: Path, oauth2_config: ServiceConfig, oauth1_config: ServiceConfig) -> None:
        save_service_config(oauth2_config)
        save_service_config(oauth1_config)
        with pytest.raises(ConfigurationError, match="No service specified"):
            resolve_service_id()


class TestResolveCredential:
    def test_env_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "secret123")
        assert resolve_credential("env:MY_TOKEN") == "secret123"

    def test_env_source_missing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NOPE_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="NOPE_TOKEN"):
            resolve_credential("env:NOPE_TOKEN")

    def test_file_source(self, tmp_path: Path) -> None:
        secret = tmp_path / "secret.txt"
        secret.write_text("  file-secret\n", encoding="utf-8")
        assert resolve_credential(f"file:{secret}") == "file-secret"

    def test_file_source_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'missing.txt'}")

    def test_literal_passthrough(self) -> None:
        assert resolve_credential("plain-value") == "plain-value"
