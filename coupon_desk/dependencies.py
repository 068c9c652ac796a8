from functools import lru_cache
from typing import (
    Annotated,
    Callable,
)

from fastapi import (
    Depends,
)
from sqlalchemy.orm import (
    Session,
)

from .clients.luma_client import LumaApiClient
from .database.database import (
    get_db,
)
from .services.admin_service import (
    AdminService,
)
from .services.app_settings_service import (
    AppSettingsService,
)
from .services.attendee_service import (
    AttendeeService,
)
from .services.coupon_allocator import (
    CouponAllocator,
)
from .services.coupon_service import (
    CouponService,
)
from .services.guest_service import (
    GuestService,
)
from .services.luma_event_service import (
    LumaEventService,
)
from .services.notifier import (
    Notifier,
)
from .services.registration_service import (
    RegistrationService,
)
from .settings import (
    Settings,
)

LumaClientFactory = Callable[[str], LumaApiClient]


@lru_cache
def get_settings():
    return Settings()


def get_notifier(
    settings: Annotated[Settings, Depends(get_settings)],
):
    return Notifier(settings)


def get_luma_client_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> LumaClientFactory:
    def factory(api_key: str) -> LumaApiClient:
        return LumaApiClient.from_settings(api_key, settings)

    return factory


def get_app_settings_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
    settings: Annotated[Settings, Depends(get_settings)],
):
    return AppSettingsService(db, settings)


def get_coupon_allocator(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
):
    return CouponAllocator(db)


def get_coupon_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
):
    return CouponService(db)


def get_attendee_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
    allocator: Annotated[CouponAllocator, Depends(get_coupon_allocator)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
):
    return AttendeeService(db, allocator, notifier, app_settings_service)


def get_registration_service(
    attendee_service: Annotated[AttendeeService, Depends(get_attendee_service)],
    allocator: Annotated[CouponAllocator, Depends(get_coupon_allocator)],
):
    return RegistrationService(attendee_service, allocator)


def get_luma_event_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
):
    return LumaEventService(db, app_settings_service)


def get_guest_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
    attendee_service: Annotated[AttendeeService, Depends(get_attendee_service)],
    allocator: Annotated[CouponAllocator, Depends(get_coupon_allocator)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
):
    return GuestService(
        db,
        attendee_service,
        allocator,
        notifier,
        app_settings_service,
    )


def get_admin_service(
    db: Annotated[
        Session,
        Depends(get_db),
    ],
    settings: Annotated[Settings, Depends(get_settings)],
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
):
    return AdminService(db, settings, app_settings_service)
