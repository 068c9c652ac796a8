from typing import Annotated
from fastapi import (
    APIRouter,
    Depends,
)

from ..dependencies import get_registration_service
from ..exceptions import CouponDeskError
from ..logging_utils import get_logger
from ..models import (
    RegisterRequest,
    RegisterResponse,
)
from ..services.registration_service import RegistrationService
from .errors import (
    http_error,
    internal_error,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register")
async def register(
    body: RegisterRequest,
    registration_service: Annotated[
        RegistrationService,
        Depends(get_registration_service),
    ],
) -> RegisterResponse:
    """
    Public self-registration. A coupon is assigned and emailed when one is
    available; the registration stands either way.
    """
    try:
        return await registration_service.register(body.name, body.email)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("register", e)
