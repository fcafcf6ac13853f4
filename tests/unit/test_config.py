"""Tests for configuration functionality."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from animap.core.config import Settings, get_settings, reload_settings


def test_settings_defaults(isolated_data_dir: Path) -> None:
    """Test that settings have correct defaults."""
    settings = Settings()

    assert settings.env == "development"
    assert settings.log_level == "INFO"
    assert settings.request_timeout == 10.0
    assert settings.max_queries == 4
    assert settings.max_concurrent_queries == 4
    assert settings.metadata_cache_ttl == 3600
    assert settings.animepahe_base_url == "https://animepahe.si"
    assert settings.mangakatana_base_url == "https://mangakatana.com"
    assert settings.is_debug is True
    assert settings.is_testing is False

    # Test directory properties
    assert settings.data_dir == isolated_data_dir.resolve()
    assert settings.config_dir == settings.data_dir / "config"
    assert settings.database_dir == settings.data_dir / "database"
    assert settings.cache_dir == settings.data_dir / "cache"
    assert settings.logs_dir == settings.data_dir / "logs"
    assert settings.database_file.name == "animap.db"


def test_directories_are_created(tmp_path: Path) -> None:
    """Test that data directories are created on load."""
    settings = Settings(data_dir=tmp_path / "fresh")

    for directory in (settings.config_dir, settings.database_dir, settings.cache_dir, settings.logs_dir):
        assert directory.is_dir()


def test_settings_from_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that settings can be loaded from environment variables."""
    monkeypatch.setenv("ANIMAP_ENV", "production")
    monkeypatch.setenv("ANIMAP_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("ANIMAP_MAX_QUERIES", "2")

    settings = reload_settings()

    assert settings.env == "production"
    assert settings.request_timeout == 5.0
    assert settings.max_queries == 2
    assert settings.is_debug is False


def test_settings_from_env_file(tmp_path: Path) -> None:
    """Test that settings can be loaded from .env file."""
    env_file = tmp_path / ".env"
    env_file.write_text("ANIMAP_ENV=testing\nANIMAP_LOG_LEVEL=DEBUG\n")

    settings = Settings(_env_file=str(env_file))

    assert settings.env == "testing"
    assert settings.log_level == "DEBUG"
    assert settings.is_testing is True


def test_settings_from_json_file(isolated_data_dir: Path) -> None:
    """Test settings.json values, including the nested sources block."""
    (isolated_data_dir / "config").mkdir(exist_ok=True)
    (isolated_data_dir / "config" / "settings.json").write_text(
        json.dumps(
            {
                "max_queries": 3,
                "sources": {"mangakatana": {"base_url": "https://katana.mirror"}},
                "matching": {"acceptance_threshold": 10},
            }
        )
    )

    settings = reload_settings()

    assert settings.max_queries == 3
    assert settings.mangakatana_base_url == "https://katana.mirror"


def test_env_vars_override_json_file(isolated_data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables take priority over settings.json."""
    (isolated_data_dir / "config").mkdir(exist_ok=True)
    (isolated_data_dir / "config" / "settings.json").write_text(json.dumps({"max_queries": 3}))
    monkeypatch.setenv("ANIMAP_MAX_QUERIES", "6")

    assert reload_settings().max_queries == 6


def test_init_values_override_json_file(isolated_data_dir: Path) -> None:
    """Test that values passed to Settings() take priority over settings.json."""
    (isolated_data_dir / "config").mkdir(exist_ok=True)
    (isolated_data_dir / "config" / "settings.json").write_text(json.dumps({"request_timeout": 30}))

    assert reload_settings().request_timeout == 30
    assert Settings(request_timeout=7).request_timeout == 7


def test_invalid_json_file_is_ignored(isolated_data_dir: Path) -> None:
    """Test that a corrupt settings.json falls back to defaults."""
    (isolated_data_dir / "config").mkdir(exist_ok=True)
    (isolated_data_dir / "config" / "settings.json").write_text("{broken")

    assert reload_settings().max_queries == 4


def test_settings_validation() -> None:
    """Test that out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        Settings(env="staging")

    with pytest.raises(ValidationError):
        Settings(request_timeout=0)

    with pytest.raises(ValidationError):
        Settings(max_queries=0)

    with pytest.raises(ValidationError):
        Settings(metadata_cache_ttl=-1)


def test_get_settings_is_cached() -> None:
    """Test that get_settings returns the same instance until reloaded."""
    first = get_settings()

    assert get_settings() is first
    assert reload_settings() is not first
