"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_account_admin_service,
    get_account_linking_service,
    get_account_store,
    get_discord_announcer,
    get_iracing_data_client,
    get_iracing_oauth_client,
    get_leaderboard_service,
    get_pkce_store,
    get_token_cipher_service,
    get_token_refresh_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_account_admin_service",
    "get_account_linking_service",
    "get_account_store",
    "get_app_settings",
    "get_discord_announcer",
    "get_iracing_data_client",
    "get_iracing_oauth_client",
    "get_leaderboard_service",
    "get_pkce_store",
    "get_token_cipher_service",
    "get_token_refresh_service",
]
