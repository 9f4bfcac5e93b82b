from __future__ import annotations

import httpx
import pytest

from irlink.clients.iracing_data import IRacingDataClient, IRacingDataError
from irlink.utils.http import RetryConfig

LINK = "https://presigned.example.com/payload.json"


def _client(iracing_settings, handler) -> IRacingDataClient:
    return IRacingDataClient(
        iracing_settings,
        transport=httpx.MockTransport(handler),
        link_retry=RetryConfig(attempts=2, backoff_seconds=0),
    )


@pytest.mark.asyncio
async def test_get_follows_link_without_credentials(iracing_settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.host == "data.example.com":
            return httpx.Response(200, json={"link": LINK, "expires": "soon"})
        return httpx.Response(200, json={"display_name": "Jesse Doe"})

    payload = await _client(iracing_settings, handler).get_member_profile(access_token="tok")

    assert payload == {"display_name": "Jesse Doe"}
    assert str(seen[0].url) == "https://data.example.com/data/member/profile"
    assert seen[0].headers["authorization"] == "Bearer tok"
    assert str(seen[1].url) == LINK
    assert "authorization" not in seen[1].headers


@pytest.mark.asyncio
async def test_get_returns_direct_payload_when_no_link(iracing_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "Direct"})

    payload = await _client(iracing_settings, handler).get("member/profile", access_token="t")

    assert payload == {"name": "Direct"}


@pytest.mark.asyncio
async def test_latest_rating_is_last_chart_point(iracing_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "data.example.com":
            assert request.url.params["category_id"] == "5"
            assert request.url.params["chart_type"] == "1"
            return httpx.Response(200, json={"link": LINK})
        return httpx.Response(
            200,
            json={"data": [{"when": "2025-01-01", "value": 1800}, {"when": "2025-01-08", "value": 1834}]},
        )

    rating = await _client(iracing_settings, handler).get_latest_rating(
        access_token="t", category_id=5, chart_type=1
    )

    assert rating == 1834


@pytest.mark.asyncio
async def test_empty_chart_is_an_error(iracing_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": []})

    with pytest.raises(IRacingDataError):
        await _client(iracing_settings, handler).get_latest_rating(
            access_token="t", category_id=5, chart_type=1
        )


@pytest.mark.asyncio
async def test_non_success_status_is_an_error(iracing_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    with pytest.raises(IRacingDataError) as exc_info:
        await _client(iracing_settings, handler).get("member/profile", access_token="t")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_link_hop_retries_server_errors(iracing_settings) -> None:
    link_calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "data.example.com":
            return httpx.Response(200, json={"link": LINK})
        link_calls.append(1)
        if len(link_calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"data": [{"value": 2000}]})

    rating = await _client(iracing_settings, handler).get_latest_rating(
        access_token="t", category_id=5, chart_type=1
    )

    assert rating == 2000
    assert len(link_calls) == 2


@pytest.mark.asyncio
async def test_link_hop_does_not_retry_client_errors(iracing_settings) -> None:
    link_calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "data.example.com":
            return httpx.Response(200, json={"link": LINK})
        link_calls.append(1)
        return httpx.Response(403)

    with pytest.raises(IRacingDataError) as exc_info:
        await _client(iracing_settings, handler).get("member/profile", access_token="t")

    assert exc_info.value.status_code == 403
    assert len(link_calls) == 1
