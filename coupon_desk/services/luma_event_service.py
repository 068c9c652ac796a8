import re
from datetime import (
    UTC,
    datetime,
)
from typing import (
    List,
    Optional,
)
from sqlalchemy.orm import Session

from ..clients.luma_client import (
    ApiEvent,
    LumaApiClient,
)
from ..constants import (
    RECENT_SYNC_LOGS_LIMIT,
    SyncStatus,
    SyncType,
)
from ..database.entities import (
    LumaEvent,
    LumaSyncLog,
)
from ..exceptions import (
    LumaApiError,
    NotFound,
)
from ..logging_utils import get_logger
from ..models import (
    ConnectionTestResponse,
    SyncResult,
)
from .app_settings_service import AppSettingsService

logger = get_logger(__name__)

LUMA_URL_RE = re.compile(r"lu\.ma/([a-zA-Z0-9-]+)")


def parse_event_ref(value: str) -> str:
    """Accept a bare event id or a lu.ma URL and return the event id."""
    value = value.strip()
    match = LUMA_URL_RE.search(value)
    return match.group(1) if match else value


class LumaEventService:
    """
    Local cache of Luma events, the active event setting and the sync log.
    """

    def __init__(
        self,
        db: Session,
        app_settings_service: AppSettingsService,
    ):
        self.db = db
        self.app_settings_service = app_settings_service

    def get_event(self, luma_event_id: str) -> Optional[LumaEvent]:
        return (
            self.db.query(LumaEvent)
            .filter(LumaEvent.luma_event_id == luma_event_id)
            .first()
        )

    def upsert_event(self, event: ApiEvent) -> LumaEvent:
        """
        Add a new event or overwrite the cached copy with the same Luma id.
        """
        row = self.get_event(event.api_id)
        if row is None:
            row = LumaEvent(luma_event_id=event.api_id)
            self.db.add(row)
        row.name = event.name
        row.description = event.description
        row.start_at = event.start_at
        row.end_at = event.end_at
        row.timezone = event.timezone
        row.url = event.url
        row.cover_url = event.cover_url
        row.guest_count = event.guest_count
        row.location_type = event.location.type if event.location else None
        row.location_name = event.location.name if event.location else None
        row.location_address = event.location.address if event.location else None
        row.visibility = event.visibility
        self.db.commit()
        self.db.refresh(row)
        return row

    def mark_synced(self, luma_event_id: str) -> None:
        row = self.get_event(luma_event_id)
        if row:
            row.last_synced_at = datetime.now(UTC)
            self.db.commit()

    def get_configured_event(self) -> tuple[Optional[str], Optional[LumaEvent], List[LumaSyncLog]]:
        app_settings = self.app_settings_service.get()
        event_id = app_settings.luma_event_id if app_settings else None
        if not event_id:
            return None, None, []
        return event_id, self.get_event(event_id), self.recent_sync_logs(event_id)

    async def set_active_event(
        self,
        event_ref: str,
        client: LumaApiClient,
    ) -> LumaEvent:
        """
        Verify the event with Luma, cache it and make it the active event.
        """
        event_id = parse_event_ref(event_ref)
        try:
            event = await client.get_event(event_id)
        except LumaApiError as e:
            logger.warning(f"Luma event lookup for {event_id} failed: {e}")
            raise NotFound("Event not found in Luma. Please check the event ID.")
        row = self.upsert_event(event)
        self.app_settings_service.set_active_event(row.luma_event_id)
        logger.info(f"Active Luma event set to {row.luma_event_id}")
        return row

    async def test_connection(self, client: LumaApiClient) -> ConnectionTestResponse:
        try:
            user = await client.get_self()
        except LumaApiError as e:
            logger.warning(f"Luma connection test failed: {e}")
            return ConnectionTestResponse(success=False, error=e.message)
        return ConnectionTestResponse(success=True, user=user)

    def clear_active_event(self) -> None:
        if self.app_settings_service.get() is not None:
            self.app_settings_service.set_active_event(None)

    def start_sync_log(
        self,
        luma_event_id: str,
        sync_type: SyncType = SyncType.MANUAL,
    ) -> LumaSyncLog:
        log = LumaSyncLog(
            luma_event_id=luma_event_id,
            sync_type=sync_type,
            status=SyncStatus.STARTED,
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def finish_sync_log(self, log: LumaSyncLog, result: SyncResult) -> LumaSyncLog:
        log.status = SyncStatus.COMPLETED if result.success else SyncStatus.FAILED
        log.guests_synced = result.guests_synced
        log.guests_added = result.guests_added
        log.guests_updated = result.guests_updated
        log.coupons_assigned = result.coupons_assigned
        log.error_message = "; ".join(result.errors) if result.errors else None
        log.completed_at = datetime.now(UTC)
        self.db.commit()
        return log

    def recent_sync_logs(
        self,
        luma_event_id: str,
        limit: int = RECENT_SYNC_LOGS_LIMIT,
    ) -> List[LumaSyncLog]:
        return (
            self.db.query(LumaSyncLog)
            .filter(LumaSyncLog.luma_event_id == luma_event_id)
            .order_by(LumaSyncLog.started_at.desc(), LumaSyncLog.id.desc())
            .limit(limit)
            .all()
        )
