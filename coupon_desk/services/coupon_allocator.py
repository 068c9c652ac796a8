from datetime import (
    UTC,
    datetime,
)
from typing import (
    Optional,
    Sequence,
    Union,
)
from sqlalchemy.orm import (
    Session,
)
from sqlalchemy.exc import SQLAlchemyError

from ..constants import ClaimantKind
from ..database.entities import (
    Attendee,
    CouponCode,
    LumaGuest,
)
from ..exceptions import (
    AlreadyAssigned,
    PersistenceError,
    PoolExhausted,
)
from ..logging_utils import get_logger

logger = get_logger(__name__)

Claimant = Union[Attendee, LumaGuest]


class CouponAllocator:
    """
    Hands out single-use coupon codes.

    A claim marks one unused coupon as used with a conditional update
    (``WHERE is_used = false``) and binds it to the claimant in the same
    transaction. If another request wins the same coupon first, the update
    matches no row and the next unused coupon is tried. Any failure rolls the
    whole claim back, so the pool never shows a coupon as free while a
    claimant holds it.
    """

    max_attempts = 5

    def __init__(
        self,
        db: Session,
    ):
        self.db = db

    def claim(self, claimant: Claimant) -> CouponCode:
        """
        Claim a coupon for an already persisted attendee or guest.
        Raises AlreadyAssigned, PoolExhausted or PersistenceError.
        """
        self._ensure_unassigned(claimant)
        if isinstance(claimant, LumaGuest):
            kind, ref = ClaimantKind.LUMA_GUEST, claimant.luma_guest_id
        else:
            kind, ref = ClaimantKind.ATTENDEE, str(claimant.id)
        return self._claim([claimant], kind, ref)

    def claim_for_guest(
        self,
        guest: LumaGuest,
        attendee: Attendee,
    ) -> CouponCode:
        """
        Claim one coupon shared by a Luma guest and the attendee mirroring it.
        """
        self._ensure_unassigned(guest)
        self._ensure_unassigned(attendee)
        return self._claim(
            [guest, attendee],
            ClaimantKind.LUMA_GUEST,
            guest.luma_guest_id,
        )

    def _ensure_unassigned(self, claimant: Claimant) -> None:
        if claimant.coupon_id is not None:
            raise AlreadyAssigned(
                f"{claimant.email} already has a coupon assigned"
            )

    def _claim(
        self,
        claimants: Sequence[Claimant],
        kind: ClaimantKind,
        ref: str,
    ) -> CouponCode:
        try:
            for _ in range(self.max_attempts):
                coupon_id = self._next_available_coupon_id()
                if coupon_id is None:
                    logger.warning("Coupon pool exhausted")
                    raise PoolExhausted()
                if not self._mark_used(coupon_id, kind, ref):
                    logger.info(f"Coupon {coupon_id} was claimed concurrently, retrying")
                    continue
                self._bind(claimants, coupon_id)
                self.db.commit()
                coupon = self.db.get(CouponCode, coupon_id)
                logger.info(f"Coupon {coupon.code} claimed by {kind.value} {ref}")
                return coupon
        except PoolExhausted:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Coupon claim for {kind.value} {ref} rolled back: {e}")
            raise PersistenceError(f"Failed to assign coupon: {e}") from e
        self.db.rollback()
        raise PoolExhausted("No available coupon codes after repeated contention")

    def _next_available_coupon_id(self) -> Optional[int]:
        row = (
            self.db.query(CouponCode.id)
            .filter(CouponCode.is_used.is_(False))
            .order_by(CouponCode.id.asc())
            .first()
        )
        return row[0] if row else None

    def _mark_used(
        self,
        coupon_id: int,
        kind: ClaimantKind,
        ref: str,
    ) -> bool:
        now = datetime.now(UTC)
        updated = (
            self.db.query(CouponCode)
            .filter(
                CouponCode.id == coupon_id,
                CouponCode.is_used.is_(False),
            )
            .update(
                {
                    CouponCode.is_used: True,
                    CouponCode.used_at: now,
                    CouponCode.used_by_kind: kind.value,
                    CouponCode.used_by_ref: ref,
                    CouponCode.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def _bind(
        self,
        claimants: Sequence[Claimant],
        coupon_id: int,
    ) -> None:
        for claimant in claimants:
            claimant.coupon_id = coupon_id
        self.db.flush()
