from typing import (
    Annotated,
    List,
    Optional,
)
from fastapi import (
    APIRouter,
    Depends,
    Query,
)
from sqlalchemy.orm import Session

from ..auth import AdminUser
from ..constants import (
    AssignmentFilter,
    RegistrationStatus,
)
from ..database.database import get_db
from ..dependencies import (
    LumaClientFactory,
    get_app_settings_service,
    get_guest_service,
    get_luma_client_factory,
    get_luma_event_service,
    get_settings,
)
from ..exceptions import (
    ConfigurationError,
    CouponDeskError,
)
from ..models import (
    ActionResponse,
    AssignCouponResponse,
    ConfiguredEventResponse,
    ConnectionTestResponse,
    LumaEventResponse,
    LumaGuestResponse,
    SetEventRequest,
    SyncEventsResult,
    SyncGuestsRequest,
    SyncLogResponse,
    SyncResult,
)
from ..services.app_settings_service import AppSettingsService
from ..services.guest_service import GuestService
from ..services.luma_event_service import LumaEventService
from ..settings import Settings
from ..tasks.sync_events import sync_events
from ..tasks.sync_guests import sync_guests
from .errors import (
    http_error,
    internal_error,
)

router = APIRouter()


def _luma_api_key(app_settings_service: AppSettingsService) -> str:
    api_key = app_settings_service.get_or_default().luma_api_key
    if not api_key:
        raise ConfigurationError(
            "Luma API key not configured. Please set it in Settings."
        )
    return api_key


@router.get("/event")
def get_event(
    admin: AdminUser,
    event_service: Annotated[
        LumaEventService,
        Depends(get_luma_event_service),
    ],
) -> ConfiguredEventResponse:
    event_id, event, logs = event_service.get_configured_event()
    return ConfiguredEventResponse(
        configured=event_id is not None,
        event_id=event_id,
        event=LumaEventResponse.model_validate(event) if event else None,
        sync_logs=[SyncLogResponse.model_validate(log) for log in logs],
    )


@router.put("/event")
async def set_event(
    body: SetEventRequest,
    admin: AdminUser,
    event_service: Annotated[
        LumaEventService,
        Depends(get_luma_event_service),
    ],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
    client_factory: Annotated[
        LumaClientFactory,
        Depends(get_luma_client_factory),
    ],
) -> LumaEventResponse:
    """
    Make an event the active one. Accepts an event id or a lu.ma URL.
    """
    try:
        api_key = _luma_api_key(app_settings_service)
        async with client_factory(api_key) as client:
            event = await event_service.set_active_event(body.event_id, client)
        return LumaEventResponse.model_validate(event)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("set_event", e)


@router.delete("/event")
def clear_event(
    admin: AdminUser,
    event_service: Annotated[
        LumaEventService,
        Depends(get_luma_event_service),
    ],
) -> ActionResponse:
    event_service.clear_active_event()
    return ActionResponse(message="Active event cleared")


@router.get("/test-connection")
async def test_connection(
    admin: AdminUser,
    event_service: Annotated[
        LumaEventService,
        Depends(get_luma_event_service),
    ],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
    client_factory: Annotated[
        LumaClientFactory,
        Depends(get_luma_client_factory),
    ],
) -> ConnectionTestResponse:
    try:
        api_key = _luma_api_key(app_settings_service)
        async with client_factory(api_key) as client:
            return await event_service.test_connection(client)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("test_connection", e)


@router.post("/sync-events")
async def sync_calendar_events(
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    client_factory: Annotated[
        LumaClientFactory,
        Depends(get_luma_client_factory),
    ],
) -> SyncEventsResult:
    try:
        return await sync_events(db, settings, client_factory=client_factory)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("sync_events", e)


@router.post("/sync-guests")
async def sync_event_guests(
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    client_factory: Annotated[
        LumaClientFactory,
        Depends(get_luma_client_factory),
    ],
    body: Optional[SyncGuestsRequest] = None,
) -> SyncResult:
    """
    Pull the guest list of an event (the active one by default) into the
    local store. Coupons are assigned separately per guest.
    """
    body = body or SyncGuestsRequest()
    try:
        return await sync_guests(
            db,
            settings,
            event_id=body.event_id,
            status=body.status,
            client_factory=client_factory,
        )
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("sync_guests", e)


@router.get("/guests")
def get_guests(
    admin: AdminUser,
    guest_service: Annotated[
        GuestService,
        Depends(get_guest_service),
    ],
    event_id: Optional[str] = Query(None),
    status: Optional[RegistrationStatus] = Query(None),
    coupon: AssignmentFilter = Query(AssignmentFilter.ALL),
    search: Optional[str] = Query(None),
) -> List[LumaGuestResponse]:
    guests = guest_service.list_guests(
        luma_event_id=event_id,
        registration_status=status,
        coupon_filter=coupon,
        search=search,
    )
    return [LumaGuestResponse.model_validate(g) for g in guests]


@router.post("/guests/{luma_guest_id}/assign-coupon")
async def assign_guest_coupon(
    luma_guest_id: str,
    admin: AdminUser,
    guest_service: Annotated[
        GuestService,
        Depends(get_guest_service),
    ],
    notify: bool = Query(False),
) -> AssignCouponResponse:
    try:
        coupon, email_sent = await guest_service.assign_coupon(
            luma_guest_id,
            notify=notify,
        )
        return AssignCouponResponse(coupon_code=coupon.code, email_sent=email_sent)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("assign_guest_coupon", e)


@router.post("/guests/{luma_guest_id}/send-email")
async def send_guest_email(
    luma_guest_id: str,
    admin: AdminUser,
    guest_service: Annotated[
        GuestService,
        Depends(get_guest_service),
    ],
) -> ActionResponse:
    try:
        await guest_service.send_email(luma_guest_id)
        return ActionResponse(message="Email sent successfully")
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("send_guest_email", e)
