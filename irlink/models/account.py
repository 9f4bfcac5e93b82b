"""
Domain models for linked iRacing accounts.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_PROVIDER_NAME = "Unknown"

Rating = Union[int, float]


class LinkedAccount(BaseModel):
    """A platform user linked to an iRacing identity.

    Serialized with camelCase field names (``externalId``, ``accessToken`` ...),
    which is the persisted store format.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    external_id: str = Field(..., description="Stable identifier of the owning platform user.")
    provider_name: str = Field(UNKNOWN_PROVIDER_NAME, description="Display name from the iRacing profile.")
    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Epoch milliseconds after which access_token must be refreshed.")
    last_rating_value: Optional[Rating] = None
    last_rating_delta: Optional[Rating] = None
    last_rank: Optional[int] = None

    def to_record(self) -> dict:
        """Return the JSON-ready representation used by the account stores."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_record(cls, record: dict) -> "LinkedAccount":
        return cls.model_validate(record)


class LinkedAccountView(BaseModel):
    """Public projection of a linked account; never carries credentials."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    external_id: str
    provider_name: str
    last_rating_value: Optional[Rating] = None
    last_rating_delta: Optional[Rating] = None
    last_rank: Optional[int] = None

    @classmethod
    def from_account(cls, account: LinkedAccount) -> "LinkedAccountView":
        return cls(
            external_id=account.external_id,
            provider_name=account.provider_name,
            last_rating_value=account.last_rating_value,
            last_rating_delta=account.last_rating_delta,
            last_rank=account.last_rank,
        )


__all__ = ["LinkedAccount", "LinkedAccountView", "Rating", "UNKNOWN_PROVIDER_NAME"]
