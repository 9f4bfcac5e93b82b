"""
Minimal Discord REST client for posting plain-text channel messages.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from irlink.core.config import DiscordSettings

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class DiscordPostError(Exception):
    """Raised when Discord refuses a message."""


def split_message(content: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split ``content`` on line boundaries into chunks Discord will accept."""
    chunks: List[str] = []
    # None means no chunk is open; "" is an open chunk holding a blank line.
    current: Optional[str] = None

    def flush() -> None:
        if current and current.strip():
            chunks.append(current)

    for line in content.splitlines():
        while len(line) > limit:
            flush()
            current = None
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = line if current is None else f"{current}\n{line}"
        if len(candidate) > limit:
            flush()
            current = line
        else:
            current = candidate
    flush()
    return chunks


class DiscordAnnouncer:
    """Send messages either through a bot token + channel id or an incoming webhook."""

    def __init__(
        self,
        settings: DiscordSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        if self._settings.webhook_url:
            return True
        return bool(self._settings.bot_token and self._settings.announce_channel_id)

    def _target(self) -> tuple[str, dict]:
        if self._settings.webhook_url:
            return self._settings.webhook_url, {}
        if not (self._settings.bot_token and self._settings.announce_channel_id):
            raise DiscordPostError(
                "Discord is not configured: set DISCORD_WEBHOOK_URL or "
                "DISCORD_TOKEN and ANNOUNCE_CHANNEL_ID."
            )
        url = (
            f"{self._settings.api_base_url.rstrip('/')}/channels/"
            f"{self._settings.announce_channel_id}/messages"
        )
        return url, {"Authorization": f"Bot {self._settings.bot_token}"}

    async def send(self, content: str) -> None:
        """Post ``content``, split into as many messages as Discord requires."""
        url, headers = self._target()
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            for chunk in split_message(content):
                try:
                    response = await client.post(
                        url, json={"content": chunk}, headers=headers
                    )
                except httpx.HTTPError as exc:
                    raise DiscordPostError(f"Failed to reach Discord: {exc}") from exc
                if response.is_error:
                    raise DiscordPostError(
                        f"Discord rejected message: {response.status_code} - {response.text}"
                    )
        logger.info("Posted message to Discord")


__all__ = ["DiscordAnnouncer", "DiscordPostError", "MAX_MESSAGE_LENGTH", "split_message"]
