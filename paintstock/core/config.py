"""Environment-driven configuration for PaintStock.

Every knob the application reads lives on ``AppSettings``. Values come from
the process environment first, then ``.env`` / ``.env.local`` in the working
directory, then the defaults below, so a fresh checkout boots without any
setup against a local SQLite file.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "PaintStock"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None
    TZ: str = "America/Chicago"

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    # Comma separated in the environment.
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    AUTH_ALLOW_API_KEY: bool = True

    # Browser login (single shared account for the shop office).
    APP_SECRET: str = "dev-insecure-secret-change-me"
    UI_USERNAME: str = "admin"
    UI_PASSWORD: str = "change-me"
    UI_PASSWORD_HASH: str = ""
    SESSION_COOKIE_NAME: str = "ps_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 30

    DB_URL: str = Field(
        default="",
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
    )

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # Domain defaults
    DEFAULT_UNIT: str = "each"
    SHOP_LOCATION: str = "shop"
    REPORT_LOOKBACK_MONTHS: int = 3
    TOP_ITEMS_LIMIT: int = 10

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR or self.BASE_DIR / "paintstock" / "templates"

    @property
    def static_dir(self) -> Path:
        return self.STATIC_DIR or self.BASE_DIR / "paintstock" / "static"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("SHOP_LOCATION", "DEFAULT_UNIT")
    @classmethod
    def strip_required(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    if settings.TEMPLATES_DIR is None:
        settings.TEMPLATES_DIR = settings.templates_dir
    if settings.STATIC_DIR is None:
        settings.STATIC_DIR = settings.static_dir
    if not settings.DB_URL:
        settings.DB_URL = f"sqlite:///{settings.DATA_DIR / 'paintstock.db'}"
    return settings


settings = get_settings()
