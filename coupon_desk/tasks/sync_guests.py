import asyncio
from typing import (
    Callable,
    Optional,
)
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coupon_desk.clients.luma_client import (
    ApiGuest,
    LumaApiClient,
)
from coupon_desk.constants import (
    RegistrationStatus,
    SyncType,
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
from coupon_desk.models import SyncResult
from coupon_desk.services.app_settings_service import AppSettingsService
from coupon_desk.services.attendee_service import AttendeeService
from coupon_desk.services.coupon_allocator import CouponAllocator
from coupon_desk.services.guest_service import GuestService
from coupon_desk.services.luma_event_service import LumaEventService
from coupon_desk.services.notifier import Notifier
from coupon_desk.settings import (
    Settings,
)

logger = get_logger(__name__)

LumaClientFactory = Callable[[str], LumaApiClient]


def build_guest_service(
    db: Session,
    settings: Settings,
    app_settings_service: AppSettingsService,
) -> GuestService:
    allocator = CouponAllocator(db)
    notifier = Notifier(settings)
    attendee_service = AttendeeService(db, allocator, notifier, app_settings_service)
    return GuestService(db, attendee_service, allocator, notifier, app_settings_service)


async def sync_guests(
    db: Session,
    settings: Settings,
    event_id: Optional[str] = None,
    status: Optional[RegistrationStatus] = RegistrationStatus.CONFIRMED,
    client_factory: Optional[LumaClientFactory] = None,
    sync_type: SyncType = SyncType.MANUAL,
) -> SyncResult:
    """
    Mirror the guest list of a Luma event into the local store.

    Guests are upserted one at a time so a bad record is reported and
    skipped without undoing the others. Coupons are never assigned here.
    """
    app_settings_service = AppSettingsService(db, settings)
    app_settings = app_settings_service.get_or_default()
    if not app_settings.luma_api_key:
        raise ConfigurationError(
            "Luma API key not configured. Please set it in Settings."
        )
    event_id = event_id or app_settings.luma_event_id
    if not event_id:
        raise ConfigurationError("No Luma event configured")

    client_factory = client_factory or (
        lambda api_key: LumaApiClient.from_settings(api_key, settings)
    )
    event_service = LumaEventService(db, app_settings_service)
    guest_service = build_guest_service(db, settings, app_settings_service)

    sync_log = event_service.start_sync_log(event_id, sync_type)
    result = SyncResult()
    logger.info(f"Syncing Luma guests for event {event_id}")

    try:
        async with client_factory(app_settings.luma_api_key) as client:
            event = await client.get_event(event_id)
            event_service.upsert_event(event)
            raw_guests = await client.get_all_guests(event_id, status=status)
    except (LumaApiError, SQLAlchemyError, PydanticValidationError) as e:
        db.rollback()
        logger.error(f"Luma sync for event {event_id} failed: {e}", exc_info=True)
        result.errors.append(f"Sync failed: {e}")
        result.success = False
        event_service.finish_sync_log(sync_log, result)
        return result
    except Exception as e:
        db.rollback()
        result.errors.append(f"Sync failed: {e}")
        result.success = False
        event_service.finish_sync_log(sync_log, result)
        raise

    batch_size = settings.sync_batch_size
    for start in range(0, len(raw_guests), batch_size):
        if start:
            await asyncio.sleep(settings.sync_batch_delay.total_seconds())
        for raw in raw_guests[start:start + batch_size]:
            result.guests_synced += 1
            try:
                guest = ApiGuest.model_validate(raw)
                if guest_service.upsert_guest(event_id, guest):
                    result.guests_added += 1
                else:
                    result.guests_updated += 1
            except (PydanticValidationError, SQLAlchemyError, ValueError) as e:
                db.rollback()
                email = raw.get("email") if isinstance(raw, dict) else None
                logger.error(f"Failed to process guest {email}: {e}")
                result.errors.append(f"Failed to process guest {email}: {e}")

    event_service.mark_synced(event_id)
    result.success = not result.errors
    event_service.finish_sync_log(sync_log, result)
    logger.info(
        f"Synced {result.guests_synced} guests for {event_id}: "
        f"{result.guests_added} added, {result.guests_updated} updated, "
        f"{len(result.errors)} errors"
    )
    return result


async def _main(settings: Settings):
    db_gen = get_db()
    db = next(db_gen)
    try:
        await sync_guests(db, settings, sync_type=SyncType.SCHEDULED)
    finally:
        try:
            next(db_gen)
        except StopIteration:
            pass


if __name__ == "__main__":
    asyncio.run(_main(Settings()))
