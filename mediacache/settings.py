from __future__ import annotations

import logging
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG = logging.getLogger("mediacache.settings")

DEFAULT_MAX_CHUNK_SIZE = 1024 * 1024


class Settings(BaseSettings):
    """Configuration for media serving and the request cache."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    data_dir: Path = Field(
        default=Path("data"),
        validation_alias=AliasChoices("MEDIACACHE_DATA_DIR", "data_dir"),
    )
    media_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("MEDIACACHE_MEDIA_DIR", "media_dir"),
    )
    cache_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("MEDIACACHE_CACHE_DIR", "cache_dir"),
    )
    max_chunk_size: int = Field(
        default=DEFAULT_MAX_CHUNK_SIZE,
        validation_alias=AliasChoices("MEDIACACHE_MAX_CHUNK_SIZE", "max_chunk_size"),
    )
    media_type: str = Field(
        default="audio/mpeg",
        validation_alias=AliasChoices("MEDIACACHE_MEDIA_TYPE", "media_type"),
    )
    upstream_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "MEDIACACHE_UPSTREAM_API_KEY",
            "RAPIDAPI_KEY",
            "upstream_api_key",
        ),
    )
    upstream_api_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "MEDIACACHE_UPSTREAM_API_HOST",
            "RAPIDAPI_HOST",
            "upstream_api_host",
        ),
    )
    upstream_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("MEDIACACHE_UPSTREAM_TIMEOUT", "upstream_timeout"),
    )

    @field_validator("max_chunk_size")
    @classmethod
    def _check_chunk_size(cls, value: int) -> int:
        if value < 1:
            msg = "max_chunk_size must be positive"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _derive_directories(self) -> Settings:
        if self.media_dir is None:
            self.media_dir = self.data_dir / "songs"
        if self.cache_dir is None:
            self.cache_dir = self.data_dir / "cache"
        return self

    @property
    def store_path(self) -> Path:
        assert self.cache_dir is not None
        return self.cache_dir / "requests"

    @property
    def upstream_headers(self) -> dict[str, str]:
        """Auth headers attached to every upstream dispatch."""
        headers: dict[str, str] = {}
        if self.upstream_api_key:
            headers["X-RapidAPI-Key"] = self.upstream_api_key
        if self.upstream_api_host:
            headers["X-RapidAPI-Host"] = self.upstream_api_host
        return headers


def load_settings_from_env() -> Settings:
    """Load settings from environment variables and an optional ``.env`` file.

    Returns:
        Settings instance populated from the environment.
    """
    return Settings()


def ensure_directories(settings: Settings) -> None:
    """Create the data, media and cache directories if they are missing."""
    assert settings.media_dir is not None
    assert settings.cache_dir is not None
    for directory in (settings.data_dir, settings.media_dir, settings.cache_dir):
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            LOG.info("created directory %s", directory)
