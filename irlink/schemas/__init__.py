"""Public schema exports."""

from .auth import AuthorizationUrlResponse, LoginLinkResponse
from .leaderboard import LeaderboardResponse, RankChange, UnlinkResponse

__all__ = [
    "AuthorizationUrlResponse",
    "LeaderboardResponse",
    "LoginLinkResponse",
    "RankChange",
    "UnlinkResponse",
]
