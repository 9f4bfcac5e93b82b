"""Service layer exports."""

from .accounts import AccountAdminService, UnlinkResult
from .leaderboard import LeaderboardResult, LeaderboardService, RankChangeEvent
from .linking import AccountLinkingService, MissingAuthorizationCodeError
from .pkce import (
    PKCEChallengeStore,
    PKCESessionError,
    PKCESessionExpiredError,
    PKCESessionNotFoundError,
)
from .tokens import TokenRefreshService

__all__ = [
    "AccountAdminService",
    "AccountLinkingService",
    "LeaderboardResult",
    "LeaderboardService",
    "MissingAuthorizationCodeError",
    "PKCEChallengeStore",
    "PKCESessionError",
    "PKCESessionExpiredError",
    "PKCESessionNotFoundError",
    "RankChangeEvent",
    "TokenRefreshService",
    "UnlinkResult",
]
