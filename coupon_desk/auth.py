from typing import Annotated

from fastapi import (
    Depends,
    HTTPException,
    status,
)
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBearer,
)

from .database.entities import Admin
from .dependencies import (
    get_admin_service,
    get_settings,
)
from .logging_utils import get_logger
from .security import (
    TokenError,
    decode_token,
)
from .services.admin_service import AdminService
from .settings import Settings

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_admin(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(bearer_scheme),
    ],
    settings: Annotated[Settings, Depends(get_settings)],
    admin_service: Annotated[AdminService, Depends(get_admin_service)],
) -> Admin:
    """Resolve the bearer token to an active admin or answer 401."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")
    try:
        payload = decode_token(credentials.credentials, settings)
    except TokenError as e:
        logger.debug(f"Rejected admin token: {e}")
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")
    try:
        admin_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")

    admin = admin_service.get_admin(admin_id)
    if admin is None or not admin.is_active:
        raise _unauthorized("Admin not found")
    return admin


AdminUser = Annotated[Admin, Depends(require_admin)]
