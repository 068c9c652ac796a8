from typing import Annotated
from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
)

from ..dependencies import get_admin_service
from ..exceptions import (
    ConfigurationError,
    CouponDeskError,
)
from ..models import (
    AdminRegisterRequest,
    AdminRegisterResponse,
    LoginRequest,
    TokenResponse,
)
from ..services.admin_service import AdminService
from .errors import (
    http_error,
    internal_error,
)

router = APIRouter()


@router.post("/register-admin")
def register_admin(
    body: AdminRegisterRequest,
    admin_service: Annotated[
        AdminService,
        Depends(get_admin_service),
    ],
) -> AdminRegisterResponse:
    """
    Create an admin account. Requires the deployment's registration secret.
    """
    try:
        return admin_service.register_admin(body)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=e.message)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("register_admin", e)


@router.post("/login")
def login(
    body: LoginRequest,
    admin_service: Annotated[
        AdminService,
        Depends(get_admin_service),
    ],
) -> TokenResponse:
    try:
        return admin_service.login(body)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("login", e)
