"""Schemas for leaderboard and account administration responses."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from irlink.models.account import LinkedAccountView


class RankChange(BaseModel):
    external_id: str
    provider_name: str
    previous_rank: int
    new_rank: int
    message: str


class LeaderboardResponse(BaseModel):
    """Ranked standings plus the rank changes detected in this pass."""

    standings: List[LinkedAccountView] = Field(default_factory=list)
    rank_changes: List[RankChange] = Field(default_factory=list)
    refreshed: int = 0
    persisted: bool = False
    published: Optional[bool] = Field(
        None, description="Whether the result was posted to Discord; null when not requested."
    )
    message: str = Field("", description="Leaderboard rendered as a Discord message.")


class UnlinkResponse(BaseModel):
    status: Literal["removed", "not_found", "ambiguous"]
    message: str
    external_id: Optional[str] = None
    candidates: List[str] = Field(default_factory=list)


__all__ = ["LeaderboardResponse", "RankChange", "UnlinkResponse"]
