"""
Client for the iRacing Data API.

Most Data API endpoints answer a bearer-authenticated request with
``{"link": "<presigned url>"}``; the real payload is fetched from that link
without credentials. ``get`` hides the indirection.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from irlink.core.config import IRacingSettings
from irlink.models.account import Rating
from irlink.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)


class IRacingDataError(Exception):
    """Raised when a Data API call fails or returns an unusable payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IRacingDataClient:
    """Bearer-authenticated access to member profile and chart endpoints."""

    def __init__(
        self,
        settings: IRacingSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
        link_retry: Optional[RetryConfig] = None,
    ) -> None:
        self._base_url = settings.data_api_base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._link_retry = link_retry or RetryConfig()

    async def get(
        self,
        path: str,
        *,
        access_token: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """GET ``path`` and follow the ``link`` indirection when present."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(
                    url,
                    params=params,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as exc:
                raise IRacingDataError(f"Request to {path} failed: {exc}") from exc
            if response.status_code != httpx.codes.OK:
                raise IRacingDataError(
                    f"Request to {path} failed with status {response.status_code}",
                    status_code=response.status_code,
                )
            payload = self._decode(response, path)

            link = payload.get("link") if isinstance(payload, dict) else None
            if not link:
                return payload

            logger.debug("Following data link for %s", path)
            try:
                linked = await request_with_retry(
                    client.get, link, retry_config=self._link_retry
                )
            except httpx.HTTPStatusError as exc:
                raise IRacingDataError(
                    f"Linked payload for {path} failed with status "
                    f"{exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise IRacingDataError(f"Linked payload for {path} failed: {exc}") from exc
            return self._decode(linked, path)

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise IRacingDataError(f"Response for {path} is not valid JSON") from exc

    async def get_member_profile(self, *, access_token: str) -> Dict[str, Any]:
        payload = await self.get("member/profile", access_token=access_token)
        if not isinstance(payload, dict):
            raise IRacingDataError("Member profile payload is not an object")
        return payload

    async def get_chart_data(
        self, *, access_token: str, category_id: int, chart_type: int
    ) -> List[Dict[str, Any]]:
        """Return the rating time series for one license category, oldest first."""
        payload = await self.get(
            "member/chart_data",
            access_token=access_token,
            params={"chart_type": chart_type, "category_id": category_id},
        )
        points = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(points, list):
            raise IRacingDataError("Chart payload has no 'data' array")
        return points

    async def get_latest_rating(
        self, *, access_token: str, category_id: int, chart_type: int
    ) -> Rating:
        """Return the value of the most recent chart point."""
        points = await self.get_chart_data(
            access_token=access_token, category_id=category_id, chart_type=chart_type
        )
        if not points:
            raise IRacingDataError("Chart data is empty")
        latest = points[-1]
        value = latest.get("value") if isinstance(latest, dict) else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise IRacingDataError("Latest chart point has no numeric value")
        return value


__all__ = ["IRacingDataClient", "IRacingDataError"]
