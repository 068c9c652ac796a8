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

from ..clients.luma_client import ApiGuest
from ..constants import (
    AssignmentFilter,
    AttendeeSource,
    RegistrationStatus,
)
from ..database.entities import (
    Attendee,
    CouponCode,
    LumaGuest,
)
from ..exceptions import (
    AlreadyAssigned,
    ConfigurationError,
    NoCouponAssigned,
    NotFound,
    UpstreamError,
)
from ..logging_utils import get_logger
from ..models import normalize_email
from .app_settings_service import AppSettingsService
from .attendee_service import AttendeeService
from .coupon_allocator import CouponAllocator
from .notifier import Notifier

logger = get_logger(__name__)


class GuestService:
    """
    Mirrored Luma guests and the per-guest admin actions on them.
    """

    def __init__(
        self,
        db: Session,
        attendee_service: AttendeeService,
        allocator: CouponAllocator,
        notifier: Notifier,
        app_settings_service: AppSettingsService,
    ):
        self.db = db
        self.attendee_service = attendee_service
        self.allocator = allocator
        self.notifier = notifier
        self.app_settings_service = app_settings_service

    def get_guest(self, luma_guest_id: str) -> LumaGuest:
        guest = self.get_by_luma_id(luma_guest_id)
        if guest is None:
            raise NotFound("Luma guest not found")
        return guest

    def get_by_luma_id(self, luma_guest_id: str) -> Optional[LumaGuest]:
        return (
            self.db.query(LumaGuest)
            .filter(LumaGuest.luma_guest_id == luma_guest_id)
            .first()
        )

    def upsert_guest(
        self,
        luma_event_id: str,
        guest: ApiGuest,
    ) -> bool:
        """
        Insert or update the local copy of a Luma guest, keyed by its Luma id.
        Returns True when the guest was newly created. Coupon state is left
        alone.
        """
        row = self.get_by_luma_id(guest.id)
        is_new = row is None
        if is_new:
            row = LumaGuest(luma_guest_id=guest.id)
            self.db.add(row)
        row.luma_event_id = luma_event_id
        row.guest_key = guest.guest_key
        # Luma may omit the name; fall back to the email local part
        row.name = guest.name.strip() or guest.email.split("@")[0]
        row.email = normalize_email(guest.email)
        row.registration_status = guest.registration_status
        row.approval_status = guest.approval_status
        row.attendance_status = guest.attendance_status
        row.registered_at = guest.created_at
        row.synced_at = datetime.now(UTC)
        self.db.commit()
        return is_new

    def list_guests(
        self,
        luma_event_id: Optional[str] = None,
        registration_status: Optional[RegistrationStatus] = None,
        coupon_filter: AssignmentFilter = AssignmentFilter.ALL,
        search: Optional[str] = None,
    ) -> List[LumaGuest]:
        if luma_event_id is None:
            app_settings = self.app_settings_service.get()
            luma_event_id = app_settings.luma_event_id if app_settings else None
        if not luma_event_id:
            return []
        query = (
            self.db.query(LumaGuest)
            .options(joinedload(LumaGuest.coupon))
            .filter(LumaGuest.luma_event_id == luma_event_id)
        )
        if registration_status:
            query = query.filter(LumaGuest.registration_status == registration_status)
        if coupon_filter == AssignmentFilter.WITH_COUPON:
            query = query.filter(LumaGuest.coupon_id.is_not(None))
        elif coupon_filter == AssignmentFilter.WITHOUT_COUPON:
            query = query.filter(LumaGuest.coupon_id.is_(None))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(LumaGuest.name.ilike(pattern), LumaGuest.email.ilike(pattern))
            )
        return query.order_by(LumaGuest.registered_at.desc(), LumaGuest.id.desc()).all()

    async def assign_coupon(
        self,
        luma_guest_id: str,
        notify: bool = False,
    ) -> tuple[CouponCode, bool]:
        """
        Promote a synced guest to an attendee and claim one coupon for both.

        An attendee registered with the same email is reused and tagged with
        the guest's Luma references; otherwise a new attendee mirrors the
        guest. Returns the coupon and whether an email was sent.
        """
        guest = self.get_guest(luma_guest_id)
        if guest.coupon_id is not None:
            raise AlreadyAssigned("Guest already has a coupon assigned")

        attendee = self._mirror_attendee(guest)
        coupon = self.allocator.claim_for_guest(guest, attendee)

        email_sent = False
        if notify:
            email_sent = await self._try_notify(guest, coupon)
        return coupon, email_sent

    async def send_email(self, luma_guest_id: str) -> None:
        guest = self.get_guest(luma_guest_id)
        if guest.coupon is None:
            raise NoCouponAssigned(
                "Guest does not have a coupon assigned. Please assign a coupon first."
            )
        await self.notifier.notify(
            guest,
            guest.coupon,
            self.app_settings_service.get_or_default(),
        )
        self._mark_email_sent(guest)

    def _mirror_attendee(self, guest: LumaGuest) -> Attendee:
        attendee = self.attendee_service.get_by_email(guest.email)
        if attendee is None:
            return self.attendee_service.create_attendee(
                guest.name,
                guest.email,
                source=AttendeeSource.LUMA,
                registered_at=guest.registered_at,
                luma_guest_id=guest.luma_guest_id,
                luma_event_id=guest.luma_event_id,
            )
        if attendee.coupon_id is not None:
            raise AlreadyAssigned(
                f"Attendee {attendee.email} already has a coupon assigned"
            )
        attendee.luma_guest_id = guest.luma_guest_id
        attendee.luma_event_id = guest.luma_event_id
        attendee.source = AttendeeSource.LUMA
        self.db.commit()
        return attendee

    async def _try_notify(self, guest: LumaGuest, coupon: CouponCode) -> bool:
        try:
            await self.notifier.notify(
                guest,
                coupon,
                self.app_settings_service.get_or_default(),
            )
        except (UpstreamError, ConfigurationError) as e:
            logger.error(f"Failed to send coupon email to {guest.email}: {e}")
            return False
        self._mark_email_sent(guest)
        return True

    def _mark_email_sent(self, guest: LumaGuest) -> None:
        guest.email_sent_at = datetime.now(UTC)
        self.db.commit()
