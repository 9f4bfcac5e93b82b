"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationUrlResponse(BaseModel):
    """Returned instead of a redirect when the client asks for JSON."""

    authorization_url: str = Field(..., description="iRacing consent URL to open.")
    state: str = Field(..., description="Opaque state (the external user id).")



class LoginLinkResponse(BaseModel):
    """Login link handed to a user who asked to link their account."""

    login_url: str = Field(..., description="``/oauth/login`` URL on the public host.")
    state: str
    message: str = Field(..., description="Reply text for the chat command.")


__all__ = ["AuthorizationUrlResponse", "LoginLinkResponse"]
