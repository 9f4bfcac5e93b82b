"""
iRacing OAuth utilities.

These helpers build the PKCE authorization URL and talk to the token endpoint
for both the authorization-code and refresh-token grants.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import status

from irlink.core.config import IRacingSettings
from irlink.core.security import mask_secret

logger = logging.getLogger(__name__)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects an authorization code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.error_description = error_description


class TokenRefreshError(Exception):
    """Raised when a stored refresh token can no longer be exchanged."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class TokenGrant:
    """Normalized token endpoint response."""

    access_token: str
    refresh_token: Optional[str]
    expires_in: int


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _parse_expires_in(value: Any) -> Optional[int]:
    """Return a positive lifetime in seconds, or None when the value is unusable."""
    if isinstance(value, bool):
        return None
    try:
        seconds = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return seconds if seconds > 0 else None


class IRacingOAuthClient:
    """Build iRacing authorization URLs and call the token endpoint."""

    def __init__(
        self,
        settings: IRacingSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    @property
    def token_url(self) -> str:
        return self._settings.token_url

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Construct the iRacing consent URL for a PKCE (S256) authorization request."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "scope": " ".join(self._settings.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    def _masked_secret(self) -> str:
        return mask_secret(self._settings.client_secret, self._settings.client_id)

    async def _post_token_form(self, payload: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            return await client.post(self.token_url, data=payload)

    async def exchange_authorization_code(self, code: str, code_verifier: str) -> TokenGrant:
        """Exchange an authorization code (plus its PKCE verifier) for tokens."""
        payload = {
            "grant_type": "authorization_code",
            "client_id": self._settings.client_id,
            "client_secret": self._masked_secret(),
            "code": code,
            "redirect_uri": str(self._settings.redirect_uri),
            "code_verifier": code_verifier,
        }
        response = await self._post_token_form(payload)
        token_payload = _json_or_empty(response)
        logger.info("Token exchange responded with status %s", response.status_code)

        error = token_payload.get("error")
        if response.status_code != status.HTTP_200_OK or error:
            description = token_payload.get("error_description")
            raise OAuthTokenExchangeError(
                f"OAuth Error: {error or 'Unknown error'}\n"
                f"Description: {description or 'No description'}",
                status_code=response.status_code,
                error=error,
                error_description=description,
            )

        access_token = token_payload.get("access_token")
        expires_in = _parse_expires_in(token_payload.get("expires_in"))
        if not access_token or expires_in is None:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from iRacing.",
                status_code=response.status_code,
            )

        return TokenGrant(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token"),
            expires_in=expires_in,
        )

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
            "client_secret": self._masked_secret(),
            "refresh_token": refresh_token,
        }
        try:
            response = await self._post_token_form(payload)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(f"Token refresh failed: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            logger.error(
                "Token refresh rejected: %s - %s", response.status_code, response.text
            )
            raise TokenRefreshError("Token refresh failed", status_code=response.status_code)

        token_payload = _json_or_empty(response)
        access_token = token_payload.get("access_token")
        expires_in = _parse_expires_in(token_payload.get("expires_in"))
        if token_payload.get("error") or not access_token or expires_in is None:
            raise TokenRefreshError(
                "Incomplete refresh payload returned from iRacing.",
                status_code=response.status_code,
            )

        return TokenGrant(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token"),
            expires_in=expires_in,
        )


__all__ = [
    "IRacingOAuthClient",
    "OAuthTokenExchangeError",
    "TokenGrant",
    "TokenRefreshError",
]
