from ..constants import AttendeeSource
from ..exceptions import (
    PersistenceError,
    PoolExhausted,
)
from ..logging_utils import get_logger
from ..models import RegisterResponse
from .attendee_service import AttendeeService
from .coupon_allocator import CouponAllocator

logger = get_logger(__name__)


class RegistrationService:
    """
    Public self-registration. Registration always succeeds for a new email;
    the coupon and its email are best effort on top of it.
    """

    def __init__(
        self,
        attendee_service: AttendeeService,
        allocator: CouponAllocator,
    ):
        self.attendee_service = attendee_service
        self.allocator = allocator

    async def register(self, name: str, email: str) -> RegisterResponse:
        attendee = self.attendee_service.create_attendee(
            name,
            email,
            source=AttendeeSource.WEBSITE,
        )
        logger.info(f"Registered attendee {attendee.email}")

        try:
            coupon = self.allocator.claim(attendee)
        except PoolExhausted:
            logger.warning(f"No coupon left for {attendee.email}")
            return RegisterResponse(
                registered=True,
                coupon_assigned=False,
                message="Registration successful!",
            )
        except PersistenceError as e:
            # The attendee stays registered; an admin can assign a coupon later
            logger.error(f"Coupon claim failed for {attendee.email}: {e}")
            return RegisterResponse(
                registered=True,
                coupon_assigned=False,
                message="Registration successful!",
            )

        await self.attendee_service.try_notify(attendee, coupon)
        return RegisterResponse(
            registered=True,
            coupon_assigned=True,
            message="Registration successful! Check your email for your coupon code.",
        )
