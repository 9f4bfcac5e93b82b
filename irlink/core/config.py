"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the scheduled
leaderboard runner share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SECTION_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class IRacingSettings(BaseSettings):
    """Configuration required for interacting with the iRacing OAuth and Data APIs."""

    model_config = _SECTION_CONFIG

    client_id: str = Field(..., validation_alias="IRACING_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="IRACING_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="IRACING_REDIRECT_URI")
    authorize_url: str = Field(
        "https://oauth.iracing.com/oauth2/authorize",
        validation_alias="IRACING_AUTHORIZE_URL",
    )
    token_url: str = Field(
        "https://oauth.iracing.com/oauth2/token",
        validation_alias="IRACING_TOKEN_URL",
    )
    data_api_base_url: str = Field(
        "https://members-ng.iracing.com/data",
        validation_alias="IRACING_DATA_API_BASE_URL",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("iracing.auth",),
        validation_alias="IRACING_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _SECTION_CONFIG

    pkce_ttl_seconds: int = Field(600, validation_alias="OAUTH_PKCE_TTL_SECONDS")
    refresh_buffer_seconds: int = Field(
        60,
        validation_alias="OAUTH_REFRESH_BUFFER_SECONDS",
        description="Refresh access tokens this long before they actually expire.",
    )


class StorageSettings(BaseSettings):
    """Where linked accounts are persisted."""

    model_config = _SECTION_CONFIG

    backend: Literal["json", "sqlite"] = Field("json", validation_alias="STORE_BACKEND")
    linked_accounts_path: str = Field(
        "data/linked-drivers.json", validation_alias="LINKED_ACCOUNTS_PATH"
    )
    sqlite_db_path: str = Field("data/irlink.db", validation_alias="SQLITE_DB_PATH")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SECTION_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    admin_api_token: Optional[str] = Field(
        None,
        validation_alias="ADMIN_API_TOKEN",
        description="When set, administrative routes require a matching X-Admin-Token header.",
    )


class DiscordSettings(BaseSettings):
    """Configuration for posting leaderboard messages to Discord."""

    model_config = _SECTION_CONFIG

    bot_token: Optional[str] = Field(None, validation_alias="DISCORD_TOKEN")
    announce_channel_id: Optional[str] = Field(
        None, validation_alias="ANNOUNCE_CHANNEL_ID"
    )
    webhook_url: Optional[str] = Field(
        None,
        validation_alias="DISCORD_WEBHOOK_URL",
        description="Incoming webhook used instead of the bot token when provided.",
    )
    api_base_url: str = Field(
        "https://discord.com/api/v10", validation_alias="DISCORD_API_BASE_URL"
    )


class LeaderboardSettings(BaseSettings):
    """Which rating chart is ranked and how the leaderboard is rendered."""

    model_config = _SECTION_CONFIG

    category_id: int = Field(
        5,
        validation_alias="LEADERBOARD_CATEGORY_ID",
        description="iRacing license category; 5 is sports car (road).",
    )
    chart_type: int = Field(
        1,
        validation_alias="LEADERBOARD_CHART_TYPE",
        description="iRacing chart type; 1 is iRating.",
    )
    top_n: int = Field(20, validation_alias="LEADERBOARD_TOP_N")
    title: str = Field(
        "Weekly Road iRating Leaderboard", validation_alias="LEADERBOARD_TITLE"
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    public_base_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="PUBLIC_BASE_URL",
        description="Public address of this service, used when handing out login links.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    iracing: IRacingSettings = Field(default_factory=IRacingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    leaderboard: LeaderboardSettings = Field(default_factory=LeaderboardSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DiscordSettings",
    "IRacingSettings",
    "LeaderboardSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
