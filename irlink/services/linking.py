"""
OAuth + PKCE linking of platform users to iRacing accounts.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from irlink.clients.account_store import AccountStore
from irlink.clients.iracing_auth import IRacingOAuthClient
from irlink.clients.iracing_data import IRacingDataClient, IRacingDataError
from irlink.models.account import UNKNOWN_PROVIDER_NAME, LinkedAccount
from irlink.services.pkce import PKCEChallengeStore
from irlink.utils.clock import Clock, utc_now_ms

logger = logging.getLogger(__name__)


class MissingAuthorizationCodeError(Exception):
    """Raised when the provider redirected back without a ``code``."""


class AccountNotSavedError(Exception):
    """Raised when the linked account could not be written to the store."""


def format_display_name(raw_name: Optional[str]) -> Optional[str]:
    """Shorten a full name to "First L."; single-word names are returned as-is.

    Returns None when there is no usable name.
    """
    if not raw_name or not raw_name.strip():
        return None
    parts = raw_name.split()
    if len(parts) >= 2:
        return f"{parts[0]} {parts[-1][0].upper()}."
    return raw_name.strip()


def _profile_name(profile: Dict[str, Any]) -> Optional[str]:
    for field in ("display_name", "name"):
        value = profile.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return None


class AccountLinkingService:
    """Drive the authorize → callback sequence and persist the linked account."""

    def __init__(
        self,
        *,
        store: AccountStore,
        oauth_client: IRacingOAuthClient,
        data_client: IRacingDataClient,
        pkce_store: PKCEChallengeStore,
        clock: Clock = utc_now_ms,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._data = data_client
        self._pkce = pkce_store
        self._clock = clock

    def authorize(self, external_id: str) -> str:
        """Start a PKCE session keyed by ``external_id`` and return the consent URL."""
        if not external_id or not external_id.strip():
            raise ValueError("A state value identifying the user is required.")
        challenge = self._pkce.begin(external_id)
        url = self._oauth.build_authorization_url(state=external_id, code_challenge=challenge)
        logger.info("Issued authorization URL for external id %s", external_id)
        return url

    async def complete(self, *, code: Optional[str], state: str) -> LinkedAccount:
        """Finish linking after the provider redirected back with ``code``.

        Raises ``MissingAuthorizationCodeError``, a ``PKCESessionError`` or
        ``OAuthTokenExchangeError`` before anything is stored, and
        ``AccountNotSavedError`` when the store refuses the write.
        """
        if not code or not code.strip():
            raise MissingAuthorizationCodeError("Missing authorization code.")

        verifier = self._pkce.consume(state)
        grant = await self._oauth.exchange_authorization_code(code, verifier)
        issued_at = self._clock()

        provider_name = await self.resolve_display_name(grant.access_token)
        logger.info("Linking external id %s as %s", state, provider_name)

        account = LinkedAccount(
            external_id=state,
            provider_name=provider_name,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or "",
            expires_at=issued_at + grant.expires_in * 1000,
        )
        existing = self._store.get(state)
        if existing is not None:
            account.last_rating_value = existing.last_rating_value
            account.last_rating_delta = existing.last_rating_delta
            account.last_rank = existing.last_rank
            if not grant.refresh_token:
                account.refresh_token = existing.refresh_token

        if not self._store.upsert(account):
            raise AccountNotSavedError(f"Could not save linked account for {state}.")
        return account

    async def resolve_display_name(self, access_token: str) -> str:
        """Look up the member profile; any failure falls back to "Unknown"."""
        try:
            profile = await self._data.get_member_profile(access_token=access_token)
        except IRacingDataError as exc:
            logger.error("Profile fetch failed: %s", exc)
            return UNKNOWN_PROVIDER_NAME

        name = format_display_name(_profile_name(profile))
        if name is None:
            logger.warning("No display_name or name in member profile")
            return UNKNOWN_PROVIDER_NAME
        return name


def build_login_link(public_base_url: str, external_id: str) -> str:
    """Return the ``/oauth/login`` URL a user opens to start linking."""
    return f"{public_base_url.rstrip('/')}/oauth/login?{urlencode({'state': external_id})}"


__all__ = [
    "AccountLinkingService",
    "AccountNotSavedError",
    "MissingAuthorizationCodeError",
    "build_login_link",
    "format_display_name",
]
