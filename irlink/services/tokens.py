"""
Helpers for retrieving and refreshing iRacing OAuth tokens.
"""

from __future__ import annotations

import logging

from irlink.clients.account_store import AccountStore
from irlink.clients.iracing_auth import IRacingOAuthClient
from irlink.models.account import LinkedAccount
from irlink.utils.clock import Clock, utc_now_ms

logger = logging.getLogger(__name__)


class TokenRefreshService:
    """Hands out usable access tokens for linked accounts."""

    def __init__(
        self,
        store: AccountStore,
        oauth_client: IRacingOAuthClient,
        *,
        refresh_buffer_seconds: int = 60,
        clock: Clock = utc_now_ms,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._buffer_ms = refresh_buffer_seconds * 1000
        self._clock = clock

    def needs_refresh(self, account: LinkedAccount) -> bool:
        return self._clock() >= account.expires_at - self._buffer_ms

    async def get_valid_access_token(self, account: LinkedAccount) -> str:
        """Return a token that is valid for at least the refresh buffer.

        Refreshes through the token endpoint when needed, updates ``account`` in
        place and persists it. Raises ``TokenRefreshError`` when the refresh
        token is rejected; the stale access token is never handed out.
        """
        if not self.needs_refresh(account):
            return account.access_token

        logger.info("Refreshing token for external id %s", account.external_id)
        grant = await self._oauth.refresh_token(account.refresh_token)

        account.access_token = grant.access_token
        account.refresh_token = grant.refresh_token or account.refresh_token
        account.expires_at = self._clock() + grant.expires_in * 1000
        if not self._store.update(account):
            logger.warning(
                "Refreshed token for %s was not persisted",
                account.external_id,
            )
        return account.access_token


__all__ = ["TokenRefreshService"]
