"""
FastAPI routes for account linking, leaderboards and administration.
"""

from __future__ import annotations

import hmac
import html
import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from irlink.clients.iracing_auth import OAuthTokenExchangeError
from irlink.dependencies import (
    get_account_admin_service,
    get_account_linking_service,
    get_app_settings,
    get_leaderboard_service,
)
from irlink.models.account import LinkedAccountView
from irlink.schemas import (
    AuthorizationUrlResponse,
    LeaderboardResponse,
    LoginLinkResponse,
    RankChange,
    UnlinkResponse,
)
from irlink.services.leaderboard import LeaderboardResult
from irlink.services.linking import MissingAuthorizationCodeError, build_login_link
from irlink.services.pkce import PKCESessionError

router = APIRouter()
logger = logging.getLogger(__name__)


async def require_admin(
    settings: Annotated[Any, Depends(get_app_settings)],
    x_admin_token: Annotated[Optional[str], Header()] = None,
) -> None:
    """Guard administrative routes when ADMIN_API_TOKEN is configured."""
    expected = settings.security.admin_api_token
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Invalid admin token."
        )


def _error_page(status_code: int, message: str) -> HTMLResponse:
    body = html.escape(message).replace("\n", "<br>")
    return HTMLResponse(content=body, status_code=status_code)


def _leaderboard_response(
    result: LeaderboardResult, *, message: str, published: Optional[bool] = None
) -> LeaderboardResponse:
    return LeaderboardResponse(
        standings=[LinkedAccountView.from_account(a) for a in result.standings],
        rank_changes=[
            RankChange(
                external_id=event.external_id,
                provider_name=event.provider_name,
                previous_rank=event.previous_rank,
                new_rank=event.new_rank,
                message=event.message,
            )
            for event in result.events
        ],
        refreshed=result.refreshed,
        persisted=result.persisted,
        published=published,
        message=message,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/oauth/link", response_model=LoginLinkResponse)
async def get_login_link(
    request: Request,
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., min_length=1, description="External user id to link."),
) -> LoginLinkResponse:
    """Return the login URL a user opens to link their iRacing account."""
    base_url = str(settings.public_base_url or request.base_url)
    login_url = build_login_link(base_url, state)
    return LoginLinkResponse(
        login_url=login_url,
        state=state,
        message=f"🔗 Click here to link your iRacing account:\n{login_url}",
    )


@router.get("/oauth/login", status_code=HTTPStatus.FOUND)
async def start_oauth_login(
    linking: Annotated[Any, Depends(get_account_linking_service)],
    state: str = Query(..., min_length=1, description="External user id being linked."),
    redirect: bool = Query(
        default=True,
        description="When false, return the authorization URL as JSON instead of redirecting.",
    ),
) -> Response:
    """Kick off linking: create a PKCE session and send the user to iRacing."""
    try:
        authorization_url = linking.authorize(state)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    if not redirect:
        payload = AuthorizationUrlResponse(authorization_url=authorization_url, state=state)
        return Response(
            content=payload.model_dump_json(), media_type="application/json"
        )
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)


@router.get("/oauth/callback", response_class=HTMLResponse)
async def handle_oauth_callback(
    linking: Annotated[Any, Depends(get_account_linking_service)],
    code: Optional[str] = Query(default=None, description="Authorization code from iRacing."),
    state: str = Query(default="", description="External user id echoed back by iRacing."),
) -> HTMLResponse:
    """Complete the exchange, store the linked account and confirm to the user."""
    try:
        account = await linking.complete(code=code, state=state)
    except MissingAuthorizationCodeError as exc:
        return _error_page(HTTPStatus.BAD_REQUEST, str(exc))
    except PKCESessionError as exc:
        logger.warning("Rejected callback for state %r: %s", state, exc)
        return _error_page(HTTPStatus.BAD_REQUEST, str(exc))
    except OAuthTokenExchangeError as exc:
        logger.error("Token exchange failed for state %r: %s", state, exc)
        status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 400
        return _error_page(status_code, str(exc))
    except Exception:  # pylint: disable=broad-except
        logger.exception("Callback error for state %r", state)
        return _error_page(HTTPStatus.INTERNAL_SERVER_ERROR, "Linking failed. Check logs.")

    name = html.escape(account.provider_name)
    return HTMLResponse(
        content=f"✅ Linked as <b>{name}</b>!<br><br>You can now close this window."
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def view_leaderboard(
    leaderboard: Annotated[Any, Depends(get_leaderboard_service)],
) -> LeaderboardResponse:
    """Compute current standings without moving the stored weekly baseline."""
    result = await leaderboard.run(persist=False)
    return _leaderboard_response(result, message=leaderboard.render(result))


@router.post(
    "/leaderboard/run",
    response_model=LeaderboardResponse,
    dependencies=[Depends(require_admin)],
)
async def run_leaderboard(
    leaderboard: Annotated[Any, Depends(get_leaderboard_service)],
    publish: bool = Query(default=True, description="Post the result to Discord."),
) -> LeaderboardResponse:
    """Run the persisting leaderboard pass (the scheduled weekly update)."""
    result = await leaderboard.run(persist=True)
    published = await leaderboard.publish(result) if publish else None
    return _leaderboard_response(
        result, message=leaderboard.render(result), published=published
    )


@router.get(
    "/accounts",
    response_model=list[LinkedAccountView],
    dependencies=[Depends(require_admin)],
)
async def list_accounts(
    admin: Annotated[Any, Depends(get_account_admin_service)],
) -> list[LinkedAccountView]:
    return [LinkedAccountView.from_account(a) for a in admin.list_accounts()]


@router.delete(
    "/accounts/{external_id}",
    response_model=UnlinkResponse,
    dependencies=[Depends(require_admin)],
)
async def unlink_account(
    external_id: str,
    admin: Annotated[Any, Depends(get_account_admin_service)],
) -> UnlinkResponse:
    """Unlink the account owned by ``external_id``."""
    if not admin.unlink(external_id):
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="No linked account for that user."
        )
    return UnlinkResponse(
        status="removed", message="Account unlinked.", external_id=external_id
    )


@router.delete(
    "/accounts",
    response_model=UnlinkResponse,
    dependencies=[Depends(require_admin)],
)
async def unlink_account_by_name(
    admin: Annotated[Any, Depends(get_account_admin_service)],
    name: str = Query(..., min_length=1, description="Part of the driver's display name."),
) -> UnlinkResponse:
    """Unlink the single driver whose display name matches ``name``."""
    result = admin.unlink_by_name(name)
    if result.status == "not_found":
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=result.message)
    if result.status == "ambiguous":
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=result.message)
    return UnlinkResponse(
        status=result.status,
        message=result.message,
        external_id=result.removed.external_id if result.removed else None,
    )


__all__ = ["router"]
