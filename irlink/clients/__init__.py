"""Expose constructed client wrappers."""

from .account_store import AccountStore, JSONFileAccountStore, SQLiteAccountStore
from .discord import DiscordAnnouncer
from .iracing_auth import IRacingOAuthClient
from .iracing_data import IRacingDataClient

__all__ = [
    "AccountStore",
    "DiscordAnnouncer",
    "IRacingDataClient",
    "IRacingOAuthClient",
    "JSONFileAccountStore",
    "SQLiteAccountStore",
]
