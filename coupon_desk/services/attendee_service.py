import csv
import io
from datetime import (
    UTC,
    datetime,
)
from typing import (
    List,
    Optional,
)
from sqlalchemy import or_
from sqlalchemy.orm import (
    Session,
    joinedload,
)
from sqlalchemy.exc import IntegrityError

from ..constants import (
    AssignmentFilter,
    AttendeeSource,
)
from ..database.entities import Attendee, CouponCode
from ..exceptions import (
    ConfigurationError,
    DuplicateContact,
    NoCouponAssigned,
    NotFound,
    UpstreamError,
)
from ..logging_utils import get_logger
from ..models import (
    AttendeeStats,
    normalize_email,
)
from .app_settings_service import AppSettingsService
from .coupon_allocator import CouponAllocator
from .notifier import Notifier

logger = get_logger(__name__)


class AttendeeService:
    def __init__(
        self,
        db: Session,
        allocator: CouponAllocator,
        notifier: Notifier,
        app_settings_service: AppSettingsService,
    ):
        self.db = db
        self.allocator = allocator
        self.notifier = notifier
        self.app_settings_service = app_settings_service

    def get_attendee(self, attendee_id: int) -> Attendee:
        attendee = self.db.get(Attendee, attendee_id)
        if attendee is None:
            raise NotFound("Attendee not found")
        return attendee

    def get_by_email(self, email: str) -> Optional[Attendee]:
        return (
            self.db.query(Attendee)
            .filter(Attendee.email == normalize_email(email))
            .first()
        )

    def create_attendee(
        self,
        name: str,
        email: str,
        source: AttendeeSource = AttendeeSource.MANUAL,
        registered_at: Optional[datetime] = None,
        luma_guest_id: Optional[str] = None,
        luma_event_id: Optional[str] = None,
    ) -> Attendee:
        """
        Insert an attendee without a coupon. The email is normalised and must
        not be registered yet; nothing is written when it is.
        """
        email = normalize_email(email)
        if self.get_by_email(email) is not None:
            raise DuplicateContact(email)
        attendee = Attendee(
            name=name.strip(),
            email=email,
            source=source,
            registered_at=registered_at or datetime.now(UTC),
            luma_guest_id=luma_guest_id,
            luma_event_id=luma_event_id,
        )
        self.db.add(attendee)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateContact(email)
        self.db.refresh(attendee)
        return attendee

    def delete_attendee(self, attendee_id: int) -> None:
        # The coupon stays used: a handed-out code is never recycled
        attendee = self.get_attendee(attendee_id)
        self.db.delete(attendee)
        self.db.commit()
        logger.info(f"Deleted attendee {attendee.email}")

    def list_attendees(
        self,
        search: Optional[str] = None,
        coupon_filter: AssignmentFilter = AssignmentFilter.ALL,
        page_size: int = 100,
        page_number: int = 1,
    ) -> List[Attendee]:
        query = self.db.query(Attendee).options(joinedload(Attendee.coupon))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Attendee.name.ilike(pattern), Attendee.email.ilike(pattern))
            )
        if coupon_filter == AssignmentFilter.WITH_COUPON:
            query = query.filter(Attendee.coupon_id.is_not(None))
        elif coupon_filter == AssignmentFilter.WITHOUT_COUPON:
            query = query.filter(Attendee.coupon_id.is_(None))
        offset = (page_number - 1) * page_size
        return (
            query.order_by(Attendee.registered_at.desc(), Attendee.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

    def get_stats(self) -> AttendeeStats:
        total = self.db.query(Attendee).count()
        with_coupon = (
            self.db.query(Attendee).filter(Attendee.coupon_id.is_not(None)).count()
        )
        return AttendeeStats(
            total=total,
            with_coupon=with_coupon,
            without_coupon=total - with_coupon,
        )

    async def assign_coupon(self, attendee_id: int) -> tuple[CouponCode, bool]:
        """
        Claim a coupon for an attendee registered without one, then email it.
        Returns the coupon and whether the email went out.
        """
        attendee = self.get_attendee(attendee_id)
        coupon = self.allocator.claim(attendee)
        email_sent = await self.try_notify(attendee, coupon)
        return coupon, email_sent

    async def send_email(self, attendee_id: int) -> None:
        attendee = self.get_attendee(attendee_id)
        if attendee.coupon is None:
            raise NoCouponAssigned("Attendee does not have a coupon assigned")
        await self.notifier.notify(
            attendee,
            attendee.coupon,
            self.app_settings_service.get_or_default(),
        )
        self._mark_email_sent(attendee)

    async def try_notify(self, attendee: Attendee, coupon: CouponCode) -> bool:
        """Send the coupon email; a delivery failure is logged, never raised."""
        try:
            await self.notifier.notify(
                attendee,
                coupon,
                self.app_settings_service.get_or_default(),
            )
        except (UpstreamError, ConfigurationError) as e:
            logger.error(f"Failed to send coupon email to {attendee.email}: {e}")
            return False
        self._mark_email_sent(attendee)
        return True

    def _mark_email_sent(self, attendee: Attendee) -> None:
        attendee.last_email_sent_at = datetime.now(UTC)
        self.db.commit()

    def export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["Name", "Email", "Registered At", "Coupon Code"])
        for attendee in self.list_attendees(page_size=1_000_000):
            writer.writerow(
                [
                    attendee.name,
                    attendee.email,
                    attendee.registered_at.isoformat() if attendee.registered_at else "",
                    attendee.coupon.code if attendee.coupon else "",
                ]
            )
        return buffer.getvalue()
