import asyncio
import httpx
from datetime import (
    datetime,
    timedelta,
)
from typing import (
    Any,
    List,
    Optional,
)
from pydantic import (
    BaseModel,
    ConfigDict,
)

from ..constants import (
    LUMA_BASE_URL,
    RATE_LIMIT_WARNING_THRESHOLD,
    RegistrationStatus,
)
from ..exceptions import (
    LumaApiError,
    RateLimitError,
)
from ..logging_utils import get_logger
from ..settings import Settings

logger = get_logger(__name__)


class ApiLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    name: str | None = None
    address: str | None = None


class ApiEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    api_id: str
    name: str
    description: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    timezone: str | None = None
    url: str | None = None
    cover_url: str | None = None
    guest_count: int = 0
    location: ApiLocation | None = None
    visibility: str | None = None


class ApiGuest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    email: str
    registration_status: RegistrationStatus
    approval_status: str | None = None
    attendance_status: str | None = None
    guest_key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Pagination(BaseModel):
    has_more: bool = False
    next_cursor: str | None = None


class GuestPage(BaseModel):
    # Raw dicts, validated one by one during sync
    guests: List[dict[str, Any]] = []
    pagination: Pagination | None = None

    @property
    def next_cursor(self) -> str | None:
        if self.pagination and self.pagination.has_more:
            return self.pagination.next_cursor
        return None


class EventEntry(BaseModel):
    event: ApiEvent


class EventPage(BaseModel):
    entries: List[EventEntry] = []
    has_more: bool = False
    next_cursor: str | None = None


class LumaApiClient:
    """
    Async API client for the Luma public API.
    Provides methods to fetch events and their guest lists.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = LUMA_BASE_URL,
        timeout: float = 30.0,
        calendar_id: str | None = None,
        page_delay: timedelta = timedelta(milliseconds=200),
        max_retries: int = 2,
        retry_delay: timedelta = timedelta(seconds=5),
        max_retry_delay: timedelta = timedelta(seconds=60),
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Luma API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.calendar_id = calendar_id
        self.page_delay = page_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        api_key: str,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "LumaApiClient":
        return cls(
            api_key,
            base_url=settings.luma_base_url,
            timeout=settings.luma_timeout,
            calendar_id=settings.luma_calendar_id,
            page_delay=settings.luma_page_delay,
            max_retries=settings.luma_max_retries,
            retry_delay=settings.luma_retry_delay,
            max_retry_delay=settings.luma_max_retry_delay,
            transport=transport,
        )

    async def __aenter__(
        self,
    ):
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "x-luma-api-key": self.api_key,
                "Accept": "application/json",
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type,
        exc,
        tb,
    ):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_self(self) -> dict[str, Any]:
        data = await self._get("/v1/user/get-self")
        return data.get("user") or {}

    async def get_event(
        self,
        event_id: str,
    ) -> ApiEvent:
        endpoint = "/v1/event/get"
        data = await self._get(endpoint, {"event_api_id": event_id})
        if not isinstance(data.get("event"), dict):
            raise LumaApiError(
                "Response has no event", 502, "INVALID_RESPONSE", {"endpoint": endpoint}
            )
        return ApiEvent.model_validate(data["event"])

    async def list_guests(
        self,
        event_id: str,
        status: RegistrationStatus | None = None,
        cursor: str | None = None,
    ) -> GuestPage:
        """
        Fetches one page of guests for an event.
        The returned page exposes next_cursor while more pages remain.
        """
        params = {"event_id": event_id}
        if status:
            params["status"] = RegistrationStatus(status).value
        if cursor:
            params["pagination_cursor"] = cursor
        data = await self._get("/v1/event/get-guests", params)
        return GuestPage.model_validate(data)

    async def get_all_guests(
        self,
        event_id: str,
        status: RegistrationStatus | None = None,
    ) -> List[dict[str, Any]]:
        guests: List[dict[str, Any]] = []
        cursor = None
        while True:
            page = await self.list_guests(event_id, status=status, cursor=cursor)
            guests.extend(page.guests)
            cursor = page.next_cursor
            if not cursor:
                break
            await asyncio.sleep(self.page_delay.total_seconds())
        return guests

    async def list_calendar_events(
        self,
        cursor: str | None = None,
    ) -> EventPage:
        params = {}
        if self.calendar_id:
            params["calendar_api_id"] = self.calendar_id
        if cursor:
            params["pagination_cursor"] = cursor
        data = await self._get("/v1/calendar/list-events", params)
        return EventPage.model_validate(data)

    async def get_all_calendar_events(self) -> List[ApiEvent]:
        events: List[ApiEvent] = []
        cursor = None
        while True:
            page = await self.list_calendar_events(cursor)
            events.extend(entry.event for entry in page.entries)
            cursor = page.next_cursor if page.has_more else None
            if not cursor:
                break
            await asyncio.sleep(self.page_delay.total_seconds())
        return events

    async def _get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                return await self._request(endpoint, params)
            except RateLimitError as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = min(
                    e.retry_after
                    if e.retry_after is not None
                    else self.retry_delay.total_seconds(),
                    self.max_retry_delay.total_seconds(),
                )
                logger.warning(
                    f"Luma rate limit hit on {endpoint}; retry {attempt}/{self.max_retries} in {delay}s"
                )
                await asyncio.sleep(delay)

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("LumaApiClient must be used as an async context manager")
        url = f"{self.base_url}{endpoint}"
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise LumaApiError(
                "Request timeout", 408, "TIMEOUT", {"endpoint": endpoint}
            ) from e
        except httpx.HTTPError as e:
            raise LumaApiError(
                str(e) or "Unknown error",
                500,
                "UNKNOWN_ERROR",
                {"endpoint": endpoint},
            ) from e

        remaining = resp.headers.get("X-RateLimit-Remaining")
        if remaining and remaining.isdigit() and int(remaining) < RATE_LIMIT_WARNING_THRESHOLD:
            logger.warning(
                f"Approaching Luma API rate limit: {remaining} requests remaining"
            )

        if resp.status_code == 429:
            raise RateLimitError(_parse_retry_after(resp.headers.get("Retry-After")))

        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            if not isinstance(error, dict):
                # Some endpoints answer with a bare message string
                error = {"message": error} if isinstance(error, str) else {}
            raise LumaApiError(
                error.get("message")
                or f"API request failed with status {resp.status_code}",
                resp.status_code,
                error.get("code"),
                {"endpoint": endpoint, "params": params},
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise LumaApiError(
                "Response is not valid JSON", 502, "INVALID_RESPONSE", {"endpoint": endpoint}
            ) from e
        if not isinstance(data, dict):
            raise LumaApiError(
                "Response is not a JSON object", 502, "INVALID_RESPONSE", {"endpoint": endpoint}
            )
        return data


def _parse_retry_after(value: str | None) -> float | None:
    try:
        return float(value) if value else None
    except ValueError:
        return None
