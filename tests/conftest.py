"""Pytest configuration shared across the suite."""

from __future__ import annotations

from typing import Callable

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - tests/ is not a package
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from irlink.core.config import IRacingSettings
from irlink.models.account import LinkedAccount


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def iracing_settings() -> IRacingSettings:
    return IRacingSettings(
        IRACING_CLIENT_ID="  My-Client ",
        IRACING_CLIENT_SECRET="my-secret",
        IRACING_REDIRECT_URI="https://bot.example.com/oauth/callback",
        IRACING_TOKEN_URL="https://oauth.example.com/oauth2/token",
        IRACING_AUTHORIZE_URL="https://oauth.example.com/oauth2/authorize",
        IRACING_DATA_API_BASE_URL="https://data.example.com/data",
    )


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> None:
        self.now += int((minutes * 60 + seconds) * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_account() -> Callable[..., LinkedAccount]:
    def _make(external_id: str = "discord-1", **overrides) -> LinkedAccount:
        values = {
            "external_id": external_id,
            "provider_name": "Jesse D.",
            "access_token": f"access-{external_id}",
            "refresh_token": f"refresh-{external_id}",
            "expires_at": 1_700_000_000_000 + 3_600_000,
        }
        values.update(overrides)
        return LinkedAccount(**values)

    return _make
