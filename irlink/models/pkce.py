"""
Ephemeral PKCE session records.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class PKCESession:
    """Verifier issued for one authorization attempt, keyed by OAuth state."""

    verifier: str
    created_at: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.created_at


__all__ = ["PKCESession"]
