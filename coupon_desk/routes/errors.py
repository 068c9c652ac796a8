from fastapi import HTTPException

from ..exceptions import (
    AuthenticationError,
    CouponDeskError,
    DuplicateContact,
    NotFound,
    PersistenceError,
    UpstreamError,
)
from ..logging_utils import get_logger

logger = get_logger(__name__)


def http_error(error: CouponDeskError) -> HTTPException:
    """Translate a service error into the HTTP response it stands for."""
    if isinstance(error, AuthenticationError):
        return HTTPException(status_code=401, detail=error.message)
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, DuplicateContact):
        return HTTPException(status_code=409, detail=error.message)
    if isinstance(error, UpstreamError):
        return HTTPException(status_code=502, detail=error.message)
    if isinstance(error, PersistenceError):
        logger.error(f"Persistence failure: {error.message}")
        return HTTPException(status_code=500, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


def internal_error(action: str, error: Exception) -> HTTPException:
    logger.error(
        f"Unexpected error in {action}: {str(error)}",
        exc_info=True,
    )
    return HTTPException(
        status_code=500,
        detail="Internal server error",
    )
