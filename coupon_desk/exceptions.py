from typing import Any


class CouponDeskError(Exception):
    """Base class for failures the service reports to its callers."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(CouponDeskError):
    pass


class DuplicateContact(CouponDeskError):
    def __init__(self, email: str):
        super().__init__("This email is already registered")
        self.email = email


class AlreadyAssigned(CouponDeskError):
    def __init__(self, message: str = "A coupon is already assigned"):
        super().__init__(message)


class PoolExhausted(CouponDeskError):
    def __init__(self, message: str = "No available coupon codes"):
        super().__init__(message)


class NotFound(CouponDeskError):
    pass


class NoCouponAssigned(CouponDeskError):
    def __init__(
        self,
        message: str = "No coupon assigned. Please assign a coupon first.",
    ):
        super().__init__(message)


class ConfigurationError(CouponDeskError):
    pass


class AuthenticationError(CouponDeskError):
    pass


class PersistenceError(CouponDeskError):
    pass


class UpstreamError(CouponDeskError):
    pass


class LumaApiError(UpstreamError):
    """Raised when the Luma API answers with an error or cannot be reached.

    Carries the HTTP status and Luma's error code for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.context = context or {}


class RateLimitError(LumaApiError):
    def __init__(self, retry_after: float | None = None):
        super().__init__(
            f"Rate limit exceeded. Retry after {retry_after} seconds."
            if retry_after is not None
            else "Rate limit exceeded.",
            429,
            "RATE_LIMIT_EXCEEDED",
        )
        self.retry_after = retry_after


class MailDeliveryError(UpstreamError):
    pass
