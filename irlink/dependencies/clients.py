"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The same factories back the command-line runner, so the web process and the
scheduled job are wired identically.
"""

from functools import lru_cache
from typing import Optional

from irlink.clients import (
    AccountStore,
    DiscordAnnouncer,
    IRacingDataClient,
    IRacingOAuthClient,
    JSONFileAccountStore,
    SQLiteAccountStore,
)
from irlink.core.config import get_settings
from irlink.core.security import TokenCipherService
from irlink.services import (
    AccountAdminService,
    AccountLinkingService,
    LeaderboardService,
    PKCEChallengeStore,
    TokenRefreshService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> Optional[TokenCipherService]:
    """Provide token encryption when a secret is configured."""
    secret = _settings().security.token_encryption_secret
    if not secret:
        return None
    return TokenCipherService(secret=secret)


@lru_cache()
def get_account_store() -> AccountStore:
    """Provide the configured linked-account store."""
    storage = _settings().storage
    cipher = get_token_cipher_service()
    if storage.backend == "sqlite":
        return SQLiteAccountStore(storage.sqlite_db_path, token_cipher=cipher)
    return JSONFileAccountStore(storage.linked_accounts_path, token_cipher=cipher)


@lru_cache()
def get_pkce_store() -> PKCEChallengeStore:
    """Provide the process-wide PKCE session store."""
    return PKCEChallengeStore(ttl_seconds=_settings().oauth.pkce_ttl_seconds)


@lru_cache()
def get_iracing_oauth_client() -> IRacingOAuthClient:
    """Create a singleton iRacing OAuth client."""
    return IRacingOAuthClient(_settings().iracing)


@lru_cache()
def get_iracing_data_client() -> IRacingDataClient:
    """Create a singleton iRacing Data API client."""
    return IRacingDataClient(_settings().iracing)


@lru_cache()
def get_discord_announcer() -> DiscordAnnouncer:
    """Provide the Discord channel poster."""
    return DiscordAnnouncer(_settings().discord)


def get_token_refresh_service() -> TokenRefreshService:
    """Build the token refresh helper over the shared store."""
    return TokenRefreshService(
        get_account_store(),
        get_iracing_oauth_client(),
        refresh_buffer_seconds=_settings().oauth.refresh_buffer_seconds,
    )


def get_account_linking_service() -> AccountLinkingService:
    """Build the OAuth linking flow."""
    return AccountLinkingService(
        store=get_account_store(),
        oauth_client=get_iracing_oauth_client(),
        data_client=get_iracing_data_client(),
        pkce_store=get_pkce_store(),
    )


def get_leaderboard_service() -> LeaderboardService:
    """Build the leaderboard ranker using configured clients."""
    leaderboard = _settings().leaderboard
    return LeaderboardService(
        store=get_account_store(),
        token_service=get_token_refresh_service(),
        data_client=get_iracing_data_client(),
        category_id=leaderboard.category_id,
        chart_type=leaderboard.chart_type,
        announcer=get_discord_announcer(),
        title=leaderboard.title,
        top_n=leaderboard.top_n,
    )


def get_account_admin_service() -> AccountAdminService:
    """Build the unlink helper."""
    return AccountAdminService(get_account_store())


__all__ = [
    "get_account_admin_service",
    "get_account_linking_service",
    "get_account_store",
    "get_discord_announcer",
    "get_iracing_data_client",
    "get_iracing_oauth_client",
    "get_leaderboard_service",
    "get_pkce_store",
    "get_token_cipher_service",
    "get_token_refresh_service",
]
