"""Runtime configuration for the sync engine."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FETCH_NUMBER = 25


class SyncConfig(BaseSettings):
    """Settings shared by the store, reconciler and HTTP surface.

    Values come from SMS_SYNC_* environment variables, then a .env file,
    then the defaults below.

    Args:
        fetch_number: Messages requested per page when nothing else is given.
        detect_history_end: Whether a page that brings new messages and starts
            at the oldest cached message marks the thread as fully synced.
        cache_path: Snapshot file location. None keeps the cache in memory only.
        log_level: Level name passed to logging.basicConfig.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMS_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    fetch_number: int = Field(
        default=DEFAULT_FETCH_NUMBER,
        ge=1,
        description="Messages requested per page",
    )
    detect_history_end: bool = Field(
        default=False,
        description="Clear has_more_messages when a page reaches our oldest message",
    )
    cache_path: Optional[Path] = Field(
        default=None,
        description="Snapshot file location",
    )
    log_level: str = Field(default="INFO", description="Logging level name")

    @field_validator("cache_path")
    @classmethod
    def expand_cache_path(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v is not None else None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SyncConfig":
        """Build a config from the environment.

        Args:
            env_file: Explicit .env path (defaults to ./.env).

        Returns:
            A validated SyncConfig.
        """
        if env_file is None:
            return cls()
        return cls(_env_file=env_file)
