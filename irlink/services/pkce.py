"""
Short-lived storage for PKCE verifiers between the login redirect and callback.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from typing import MutableMapping, Optional

from irlink.models.pkce import PKCESession
from irlink.utils.clock import Clock, utc_now_ms

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


class PKCESessionError(Exception):
    """Raised when a callback cannot be matched to a live PKCE session."""


class PKCESessionNotFoundError(PKCESessionError):
    """No session exists for the state, or it was already consumed."""


class PKCESessionExpiredError(PKCESessionError):
    """The session existed but outlived its TTL."""


def generate_code_verifier() -> str:
    """Return a high-entropy verifier (32 random bytes, hex-encoded)."""
    return secrets.token_hex(32)


def derive_code_challenge(verifier: str) -> str:
    """Return the S256 challenge: unpadded URL-safe base64 of SHA-256(verifier)."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class PKCEChallengeStore:
    """Map OAuth state values to verifiers, evicting anything older than the TTL."""

    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = utc_now_ms,
        sessions: Optional[MutableMapping[str, PKCESession]] = None,
    ) -> None:
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock
        self._sessions: MutableMapping[str, PKCESession] = (
            sessions if sessions is not None else {}
        )

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, state: object) -> bool:
        return state in self._sessions

    def begin(self, state: str) -> str:
        """Start a session for ``state`` and return the challenge for the authorize URL."""
        now = self._clock()
        verifier = generate_code_verifier()
        self._sessions[state] = PKCESession(verifier=verifier, created_at=now)
        self._evict_expired(now)
        return derive_code_challenge(verifier)

    def consume(self, state: str) -> str:
        """Remove the session for ``state`` and return its verifier.

        The entry is deleted whether or not it is still valid, so a callback can
        never be replayed.
        """
        session = self._sessions.pop(state, None)
        if session is None:
            raise PKCESessionNotFoundError(
                "Login session not found. Start linking again."
            )
        if session.age_ms(self._clock()) > self._ttl_ms:
            raise PKCESessionExpiredError(
                "Login session expired. Start linking again."
            )
        return session.verifier

    def _evict_expired(self, now: int) -> None:
        expired = [
            state
            for state, session in self._sessions.items()
            if session.age_ms(now) > self._ttl_ms
        ]
        for state in expired:
            del self._sessions[state]
        if expired:
            logger.debug("Evicted %d expired PKCE session(s)", len(expired))


__all__ = [
    "PKCEChallengeStore",
    "PKCESessionError",
    "PKCESessionExpiredError",
    "PKCESessionNotFoundError",
    "derive_code_challenge",
    "generate_code_verifier",
]
