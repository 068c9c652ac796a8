import asyncio
from typing import (
    Callable,
    Optional,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coupon_desk.clients.luma_client import (
    LumaApiClient,
)
from coupon_desk.database.database import (
    get_db,
)
from coupon_desk.exceptions import (
    ConfigurationError,
    LumaApiError,
)
from coupon_desk.logging_utils import (
    get_logger,
)
from coupon_desk.models import SyncEventsResult
from coupon_desk.services.app_settings_service import AppSettingsService
from coupon_desk.services.luma_event_service import LumaEventService
from coupon_desk.settings import (
    Settings,
)

logger = get_logger(__name__)


async def sync_events(
    db: Session,
    settings: Settings,
    client_factory: Optional[Callable[[str], LumaApiClient]] = None,
) -> SyncEventsResult:
    app_settings_service = AppSettingsService(db, settings)
    api_key = app_settings_service.get_or_default().luma_api_key
    if not api_key:
        raise ConfigurationError(
            "Luma API key not configured. Please set it in Settings."
        )
    client_factory = client_factory or (
        lambda key: LumaApiClient.from_settings(key, settings)
    )
    event_service = LumaEventService(db, app_settings_service)
    result = SyncEventsResult()

    logger.info("Syncing Luma calendar events")
    try:
        async with client_factory(api_key) as client:
            events = await client.get_all_calendar_events()
    except LumaApiError as e:
        logger.error(f"Failed to list Luma calendar events: {e}")
        result.success = False
        result.errors.append(f"Sync failed: {e}")
        return result

    for event in events:
        try:
            event_service.upsert_event(event)
            result.events_synced += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to add/update event {event.api_id}: {e}")
            result.errors.append(f"Failed to process event {event.api_id}: {e}")

    result.success = not result.errors
    logger.info(f"Processed {result.events_synced} events.")
    return result


async def _main(settings: Settings):
    db_gen = get_db()
    db = next(db_gen)
    try:
        await sync_events(db, settings)
    finally:
        try:
            next(db_gen)
        except StopIteration:
            pass


if __name__ == "__main__":
    asyncio.run(_main(Settings()))
