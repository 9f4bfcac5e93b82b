"""Self-service and administrative unlinking of accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from irlink.clients.account_store import AccountStore
from irlink.models.account import LinkedAccount

logger = logging.getLogger(__name__)

UnlinkStatus = Literal["removed", "not_found", "ambiguous"]


@dataclass
class UnlinkResult:
    status: UnlinkStatus
    removed: Optional[LinkedAccount] = None
    candidates: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.status == "removed" and self.removed is not None:
            name = self.removed.provider_name
            return f"Unlinked {name}" if name.endswith(".") else f"Unlinked {name}."
        if self.status == "ambiguous":
            return "Multiple drivers match: " + ", ".join(self.candidates)
        return "No linked driver matches that name."


class AccountAdminService:
    """Remove linked accounts by owner id or by display name."""

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    def list_accounts(self) -> List[LinkedAccount]:
        return self._store.list()

    def unlink(self, external_id: str) -> bool:
        removed = self._store.delete(external_id)
        if removed:
            logger.info("Unlinked external id %s", external_id)
        return removed

    def unlink_by_name(self, query: str) -> UnlinkResult:
        """Remove the single account whose display name contains ``query``.

        Nothing is removed when the query matches no account or more than one.
        """
        matches = self._store.find_by_name(query)
        if not matches:
            return UnlinkResult(status="not_found")
        if len(matches) > 1:
            return UnlinkResult(
                status="ambiguous",
                candidates=[account.provider_name for account in matches],
            )
        target = matches[0]
        if not self._store.delete(target.external_id):
            return UnlinkResult(status="not_found")
        logger.info(
            "Unlinked %s (external id %s) by name", target.provider_name, target.external_id
        )
        return UnlinkResult(status="removed", removed=target)


__all__ = ["AccountAdminService", "UnlinkResult", "UnlinkStatus"]
