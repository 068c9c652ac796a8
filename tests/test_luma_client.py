from datetime import timedelta

import httpx
import pytest

from coupon_desk.clients.luma_client import LumaApiClient
from coupon_desk.constants import RegistrationStatus
from coupon_desk.exceptions import (
    LumaApiError,
    RateLimitError,
)

from conftest import (
    FakeLuma,
    make_guest,
)


def _client(handler, **kwargs):
    kwargs.setdefault("page_delay", timedelta(0))
    kwargs.setdefault("retry_delay", timedelta(0))
    return LumaApiClient(
        "luma-key",
        base_url="https://luma.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_client_requires_api_key():
    with pytest.raises(ValueError):
        LumaApiClient("")


@pytest.mark.asyncio
async def test_get_event_parses_location():
    fake = FakeLuma()
    async with _client(fake.handler) as client:
        event = await client.get_event("evt-123")

    assert event.api_id == "evt-123"
    assert event.name == "Cafe Cursor Toronto"
    assert event.location.address == "1 King St"
    assert fake.requests == [("/v1/event/get", {"event_api_id": "evt-123"})]


@pytest.mark.asyncio
async def test_get_all_guests_follows_cursor():
    fake = FakeLuma(guests=[make_guest(i) for i in range(5)], page_size=2)
    async with _client(fake.handler) as client:
        guests = await client.get_all_guests("evt-123", status=RegistrationStatus.CONFIRMED)

    assert [g["id"] for g in guests] == [f"gst-{i}" for i in range(5)]
    cursors = [params.get("pagination_cursor") for _, params in fake.requests]
    assert cursors == [None, "2", "4"]
    assert all(params["status"] == "confirmed" for _, params in fake.requests)


@pytest.mark.asyncio
async def test_list_guests_without_more_pages_has_no_cursor():
    fake = FakeLuma(guests=[make_guest(1)], page_size=10)
    async with _client(fake.handler) as client:
        page = await client.list_guests("evt-123")

    assert len(page.guests) == 1
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(200, json={"user": {"name": "Organizer"}})

    async with _client(handler, max_retries=2) as client:
        user = await client.get_self()

    assert user == {"name": "Organizer"}
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_rate_limit_gives_up_after_max_retries():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(429, headers={"Retry-After": "0"})

    async with _client(handler, max_retries=2) as client:
        with pytest.raises(RateLimitError) as exc_info:
            await client.get_self()

    assert calls["count"] == 3
    assert exc_info.value.status_code == 429
    assert exc_info.value.error_code == "RATE_LIMIT_EXCEEDED"


@pytest.mark.asyncio
async def test_error_body_becomes_luma_api_error():
    def handler(request):
        return httpx.Response(
            404,
            json={"error": {"message": "Event not found", "code": "NOT_FOUND"}},
        )

    async with _client(handler) as client:
        with pytest.raises(LumaApiError) as exc_info:
            await client.get_event("evt-missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.error_code == "NOT_FOUND"
    assert exc_info.value.message == "Event not found"


@pytest.mark.asyncio
async def test_timeout_becomes_luma_api_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler) as client:
        with pytest.raises(LumaApiError) as exc_info:
            await client.get_self()

    assert exc_info.value.status_code == 408
    assert exc_info.value.error_code == "TIMEOUT"


@pytest.mark.asyncio
async def test_calendar_events_are_listed():
    fake = FakeLuma()
    async with _client(fake.handler) as client:
        events = await client.get_all_calendar_events()

    assert [e.api_id for e in events] == ["evt-123", "evt-456"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json=[1, 2]),
    ],
)
async def test_malformed_event_response_becomes_luma_api_error(response):
    async with _client(lambda request: response) as client:
        with pytest.raises(LumaApiError) as exc_info:
            await client.get_event("evt-123")

    assert exc_info.value.status_code == 502
    assert exc_info.value.error_code == "INVALID_RESPONSE"
