"""Environment-driven configuration for the inventory engine.

Everything the engine needs from the outside world lives on ``AppSettings`` so
callers can answer two questions quickly: which knobs exist, and where do the
defaults come from. Values are read once (``get_settings`` is cached) from the
environment or an ``.env`` file next to the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")

    # An explicit URL wins; otherwise the store lives in DATA_DIR.
    DB_URL: str | None = Field(default=None, validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    LOG_LEVEL: str = "INFO"

    # Used when the ``settings`` key is missing or unreadable.
    DEFAULT_LOW_STOCK_THRESHOLD: int = Field(default=5, ge=1)
    DEFAULT_CURRENCY: str = "PHP"

    RECENT_NOTIFICATIONS_LIMIT: int = Field(default=5, ge=1)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        if value in (None, ""):
            return "INFO"
        return str(value).strip().upper()

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'stockroom.db'}"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if settings.DB_URL is None:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings
