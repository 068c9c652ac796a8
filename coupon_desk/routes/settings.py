from typing import Annotated
from fastapi import (
    APIRouter,
    Depends,
)

from ..auth import AdminUser
from ..dependencies import get_app_settings_service
from ..exceptions import CouponDeskError
from ..models import (
    AppSettingsResponse,
    AppSettingsUpdate,
    PublicSettingsResponse,
)
from ..services.app_settings_service import AppSettingsService
from .errors import (
    http_error,
    internal_error,
)

public_router = APIRouter()
router = APIRouter()


@public_router.get("/settings/public")
def get_public_settings(
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
) -> PublicSettingsResponse:
    return app_settings_service.public_view()


@router.get("")
def get_admin_settings(
    admin: AdminUser,
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
) -> AppSettingsResponse:
    return AppSettingsResponse.model_validate(app_settings_service.get_or_default())


@router.put("")
def update_settings(
    body: AppSettingsUpdate,
    admin: AdminUser,
    app_settings_service: Annotated[
        AppSettingsService,
        Depends(get_app_settings_service),
    ],
) -> AppSettingsResponse:
    try:
        return AppSettingsResponse.model_validate(app_settings_service.update(body))
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("update_settings", e)
