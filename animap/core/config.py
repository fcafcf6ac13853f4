"""Application configuration using Pydantic Settings."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


def _default_data_dir() -> Path:
    """Resolve the default data directory.

    /config is used when present (container environment), otherwise ./data
    relative to the working directory.
    """
    if Path("/config").exists():
        return Path("/config")
    return (Path.cwd() / "data").resolve()


def _resolve_data_dir() -> Path:
    data_dir_env = os.environ.get("ANIMAP_DATA_DIR", "")
    if data_dir_env and Path(data_dir_env).exists():
        return Path(data_dir_env)
    return _default_data_dir()


def json_config_settings_source(
    settings: BaseSettings | None = None,
) -> dict[str, Any]:  # noqa: ANN001
    """Load settings from settings.json file.

    This source has lowest priority - env vars will override JSON values.
    The "matching" section is not a Settings field; it is read separately by
    animap.core.matching.config.

    Args:
        settings: The Settings class (not instance) being constructed.

    Returns:
        Dictionary with setting keys (lowercase) and values from JSON file.
    """
    settings_file = _resolve_data_dir() / "config" / "settings.json"

    if not settings_file.exists():
        return {}

    try:
        with settings_file.open("r") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}

    if not isinstance(data, dict):
        return {}

    # Nested "sources" block: {"sources": {"animepahe": {"base_url": ...}}}
    flattened: dict[str, Any] = {}
    sources = data.get("sources")
    if isinstance(sources, dict):
        for source_name, source_config in sources.items():
            if isinstance(source_config, dict) and "base_url" in source_config:
                flattened[f"{source_name}_base_url"] = source_config["base_url"]

    for key, value in data.items():
        if key in ("sources", "matching"):
            continue
        flattened[key] = value

    return {k.lower(): v for k, v in flattened.items()}


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from:
    1. JSON file (settings.json in config directory) - lowest priority
    2. .env file
    3. Environment variables - highest priority (override JSON/.env)

    All settings are prefixed with ANIMAP_ in the environment
    (e.g., ANIMAP_REQUEST_TIMEOUT=5).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ANIMAP_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources.

        Priority (lowest to highest):
        1. JSON file (settings.json)
        2. .env file
        3. Environment variables
        4. Init settings (values passed to Settings())
        """
        # Earlier sources take priority over later ones
        return (  # type: ignore[return-value]
            init_settings,
            env_settings,
            dotenv_settings,
            json_config_settings_source,
        )

    # Application
    env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment (development, production, testing)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Base directory for all application data (config, database, cache, logs)",
    )

    # Remote calls
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Per-request timeout in seconds for candidate sources and metadata providers",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent to scraped sites",
    )

    # Resolution fan-out
    max_queries: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Maximum number of search queries issued per resolution",
    )
    max_concurrent_queries: int = Field(
        default=4,
        ge=1,
        description="Maximum number of concurrent candidate-source queries per resolution",
    )

    # Metadata providers
    anilist_url: str = Field(default="https://graphql.anilist.co")
    jikan_url: str = Field(default="https://api.jikan.moe/v4")
    metadata_cache_ttl: int = Field(
        default=3600,
        ge=0,
        description="TTL in seconds for cached metadata provider responses (0 disables)",
    )

    # Content sources
    animepahe_base_url: str = Field(default="https://animepahe.si")
    mangakatana_base_url: str = Field(default="https://mangakatana.com")

    @property
    def config_dir(self) -> Path:
        """Directory for configuration files (settings.json)."""
        return self.data_dir / "config"

    @property
    def database_dir(self) -> Path:
        """Directory for database files."""
        return self.data_dir / "database"

    @property
    def cache_dir(self) -> Path:
        """Directory for cache files."""
        return self.data_dir / "cache"

    @property
    def logs_dir(self) -> Path:
        """Directory for log files."""
        return self.data_dir / "logs"

    @property
    def database_file(self) -> Path:
        """SQLite file holding resolution mappings."""
        return self.database_dir / "animap.db"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "settings.json"

    @property
    def is_debug(self) -> bool:
        return self.env == "development"

    @property
    def is_testing(self) -> bool:
        return self.env == "testing"

    def model_post_init(self, __context: object) -> None:
        """Post-initialization: create data directories if they don't exist."""
        self.data_dir = self.data_dir.resolve()

        for directory in (
            self.data_dir,
            self.config_dir,
            self.database_dir,
            self.cache_dir,
            self.logs_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()


def reload_settings() -> Settings:
    """Reload settings from all sources (JSON, .env, env vars).

    Returns:
        New Settings instance
    """
    get_settings.cache_clear()
    return get_settings()


def get_settings_file_path() -> Path:
    """Get path to settings.json file."""
    return get_settings().settings_file
