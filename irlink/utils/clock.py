"""Epoch-millisecond clock helpers shared by the token and PKCE logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]


def utc_now_ms() -> int:
    """Return the current UTC time as integer epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


__all__ = ["Clock", "utc_now_ms"]
