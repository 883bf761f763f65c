"""Configuration management for the weekly intention service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntentionSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    chroma_persist_path: Path = Field(
        default=Path("./storage/chroma"), validation_alias="CHROMA_PERSIST_PATH"
    )
    collection_name: str = Field(
        default="weekly_intentions", validation_alias="INTENTION_COLLECTION"
    )
    shared_path: Path = Field(
        default=Path("./storage/shared"), validation_alias="INTENTION_SHARED_PATH"
    )
    widget_kind: str = Field(
        default="WeeklyIntentionWidget", validation_alias="INTENTION_WIDGET_KIND"
    )
    log_level: str = Field(default="INFO", validation_alias="INTENTION_LOG_LEVEL")
    resync_settle_seconds: float = Field(
        default=1.2, validation_alias="INTENTION_RESYNC_SETTLE_SECONDS"
    )
    reachability_host: str = Field(
        default="1.1.1.1", validation_alias="INTENTION_REACHABILITY_HOST"
    )
    reachability_port: int = Field(default=443, validation_alias="INTENTION_REACHABILITY_PORT")
    reachability_interval: float = Field(
        default=10.0, validation_alias="INTENTION_REACHABILITY_INTERVAL"
    )
    store_poll_interval: float = Field(
        default=30.0, validation_alias="INTENTION_STORE_POLL_INTERVAL"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "INTENTION_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("widget_kind", "collection_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Widget kind and collection name must not be empty")
        return normalized

    @field_validator(
        "resync_settle_seconds", "reachability_interval", "store_poll_interval"
    )
    @classmethod
    def _require_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Intervals must be > 0 seconds")
        return value


@lru_cache(maxsize=1)
def get_settings() -> IntentionSettings:
    """Return cached settings instance."""

    settings = IntentionSettings()
    settings.chroma_persist_path = settings.chroma_persist_path.expanduser().resolve()
    settings.shared_path = settings.shared_path.expanduser().resolve()
    return settings


__all__ = ["IntentionSettings", "get_settings"]
