"""
Rating polling, leaderboard ranking and rank-change announcements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from irlink.clients.account_store import AccountStore
from irlink.clients.discord import DiscordAnnouncer, DiscordPostError
from irlink.clients.iracing_auth import TokenRefreshError
from irlink.clients.iracing_data import IRacingDataClient, IRacingDataError
from irlink.models.account import LinkedAccount, Rating
from irlink.services.tokens import TokenRefreshService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankChangeEvent:
    """An account that climbed the leaderboard."""

    external_id: str
    provider_name: str
    previous_rank: int
    new_rank: int
    rating: Optional[Rating]

    @property
    def spots(self) -> int:
        return self.previous_rank - self.new_rank

    @property
    def message(self) -> str:
        plural = "" if self.spots == 1 else "s"
        return (
            f"**{self.provider_name}** moved up {self.spots} spot{plural}! "
            f"Now #{self.new_rank} with {_format_rating(self.rating)} iR"
        )


@dataclass
class LeaderboardResult:
    standings: List[LinkedAccount]
    events: List[RankChangeEvent] = field(default_factory=list)
    refreshed: int = 0
    persisted: bool = False


def apply_rating(account: LinkedAccount, fresh_value: Rating) -> None:
    """Record a new observation; the first one yields a delta of zero."""
    previous = account.last_rating_value
    if previous is None:
        previous = fresh_value
    account.last_rating_delta = fresh_value - previous
    account.last_rating_value = fresh_value


def rank_accounts(
    accounts: Iterable[LinkedAccount],
) -> Tuple[List[LinkedAccount], List[RankChangeEvent]]:
    """Sort by rating (highest first) and assign dense 1-based ranks.

    Ties keep their input order. An event is produced only for accounts whose
    new rank is better than a previously stored one.
    """
    standings = sorted(
        accounts,
        key=lambda account: account.last_rating_value or 0,
        reverse=True,
    )
    events: List[RankChangeEvent] = []
    for index, account in enumerate(standings):
        new_rank = index + 1
        previous_rank = account.last_rank
        if previous_rank is not None and new_rank < previous_rank:
            events.append(
                RankChangeEvent(
                    external_id=account.external_id,
                    provider_name=account.provider_name,
                    previous_rank=previous_rank,
                    new_rank=new_rank,
                    rating=account.last_rating_value,
                )
            )
        account.last_rank = new_rank
    return standings, events


def _format_rating(value: Optional[Rating]) -> str:
    if value is None:
        return "—"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_delta(delta: Optional[Rating]) -> str:
    if not delta:
        return ""
    sign = "+" if delta > 0 else ""
    return f" ({sign}{_format_rating(delta)})"


def format_leaderboard(
    standings: Sequence[LinkedAccount], *, title: str, limit: int = 20
) -> str:
    lines = [f"**{title}**", ""]
    for position, account in enumerate(standings[:limit], start=1):
        lines.append(
            f"{position}. **{account.provider_name or 'Unknown'}** — "
            f"{_format_rating(account.last_rating_value)} iR"
            f"{_format_delta(account.last_rating_delta)}"
        )
    if len(lines) == 2:
        lines.append("No linked drivers yet.")
    return "\n".join(lines)


def format_rank_changes(events: Sequence[RankChangeEvent]) -> Optional[str]:
    if not events:
        return None
    return "\n".join(event.message for event in events)


class LeaderboardService:
    """Refresh every linked account's rating and rank the results."""

    def __init__(
        self,
        *,
        store: AccountStore,
        token_service: TokenRefreshService,
        data_client: IRacingDataClient,
        category_id: int = 5,
        chart_type: int = 1,
        announcer: Optional[DiscordAnnouncer] = None,
        title: str = "iRating Leaderboard",
        top_n: int = 20,
    ) -> None:
        self._store = store
        self._tokens = token_service
        self._data = data_client
        self._category_id = category_id
        self._chart_type = chart_type
        self._announcer = announcer
        self._title = title
        self._top_n = top_n

    async def fetch_rating(self, account: LinkedAccount) -> Optional[Rating]:
        """Return the current rating, or None when it cannot be fetched this pass."""
        try:
            token = await self._tokens.get_valid_access_token(account)
            return await self._data.get_latest_rating(
                access_token=token,
                category_id=self._category_id,
                chart_type=self._chart_type,
            )
        except TokenRefreshError as exc:
            logger.warning(
                "Skipping %s: token refresh failed (%s)", account.external_id, exc
            )
        except IRacingDataError as exc:
            logger.warning(
                "Skipping %s: rating fetch failed (%s)", account.external_id, exc
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Skipping %s: unexpected rating fetch error", account.external_id)
        return None

    async def run(self, *, persist: bool = False) -> LeaderboardResult:
        """Poll ratings, rank all linked accounts and optionally save the result.

        Only the persisting run moves the stored baseline (ratings, deltas and
        ranks); transient runs compute the same standings for display.
        """
        accounts = self._store.list()
        if not accounts:
            logger.info("No linked drivers; leaderboard is empty")
            return LeaderboardResult(standings=[])

        refreshed = 0
        for account in accounts:
            rating = await self.fetch_rating(account)
            if rating is None:
                continue
            apply_rating(account, rating)
            refreshed += 1

        standings, events = rank_accounts(accounts)
        saved = False
        if persist:
            saved = self._store.replace_all(standings)
        logger.info(
            "Ranked %d account(s), %d refreshed, %d moved up (persisted=%s)",
            len(standings),
            refreshed,
            len(events),
            saved,
        )
        return LeaderboardResult(
            standings=standings, events=events, refreshed=refreshed, persisted=saved
        )

    def render(self, result: LeaderboardResult) -> str:
        return format_leaderboard(result.standings, title=self._title, limit=self._top_n)

    async def publish(self, result: LeaderboardResult) -> bool:
        """Post the leaderboard and any rank-change announcements to Discord."""
        if self._announcer is None or not self._announcer.configured:
            logger.warning("Discord announcer not configured; skipping post")
            return False
        if not result.standings:
            logger.info("No standings to post")
            return False
        try:
            await self._announcer.send(self.render(result))
            announcements = format_rank_changes(result.events)
            if announcements:
                await self._announcer.send(announcements)
        except DiscordPostError as exc:
            logger.error("Failed to post leaderboard: %s", exc)
            return False
        return True


__all__ = [
    "LeaderboardResult",
    "LeaderboardService",
    "RankChangeEvent",
    "apply_rating",
    "format_leaderboard",
    "format_rank_changes",
    "rank_accounts",
]
