from typing import (
    List,
    Optional,
)
from sqlalchemy.orm import (
    Session,
)
from sqlalchemy.exc import IntegrityError

from ..constants import CouponFilter
from ..database.entities import CouponCode
from ..exceptions import (
    NotFound,
    ValidationError,
)
from ..logging_utils import get_logger
from ..models import (
    CouponBulkImportResponse,
    CouponStats,
    normalize_code,
)

logger = get_logger(__name__)


class CouponService:
    """
    Administration of the coupon pool: single and bulk imports, edits,
    deletion of unused codes and pool statistics. Claiming lives in
    CouponAllocator.
    """

    def __init__(
        self,
        db: Session,
    ):
        self.db = db

    def get_coupon(self, coupon_id: int) -> CouponCode:
        coupon = self.db.get(CouponCode, coupon_id)
        if coupon is None:
            raise NotFound(f"Coupon {coupon_id} not found")
        return coupon

    def create_coupon(self, code: str) -> CouponCode:
        code = normalize_code(code)
        if not code:
            raise ValidationError("Please enter a coupon code")
        coupon = CouponCode(code=code)
        self.db.add(coupon)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"Coupon code {code} already exists")
        self.db.refresh(coupon)
        logger.info(f"Created coupon {code}")
        return coupon

    def bulk_import(self, text: str) -> CouponBulkImportResponse:
        """
        Import newline separated codes. Every code is committed on its own so
        a duplicate line only fails that line.
        """
        codes = [normalize_code(line) for line in text.splitlines()]
        codes = [code for code in codes if code]
        if not codes:
            raise ValidationError("Please enter at least one coupon code")

        imported = 0
        errors: List[str] = []
        for code in codes:
            self.db.add(CouponCode(code=code))
            try:
                self.db.commit()
                imported += 1
            except IntegrityError:
                self.db.rollback()
                errors.append(f"Coupon code {code} already exists")
        logger.info(
            f"Imported {imported} of {len(codes)} coupon codes ({len(errors)} rejected)"
        )
        return CouponBulkImportResponse(imported=imported, errors=errors)

    def update_coupon(self, coupon_id: int, code: str) -> CouponCode:
        coupon = self.get_coupon(coupon_id)
        if coupon.is_used:
            raise ValidationError("Cannot edit a used coupon")
        code = normalize_code(code)
        if not code:
            raise ValidationError("Please enter a coupon code")
        coupon.code = code
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"Coupon code {code} already exists")
        self.db.refresh(coupon)
        return coupon

    def delete_coupon(self, coupon_id: int) -> None:
        coupon = self.get_coupon(coupon_id)
        if coupon.is_used:
            raise ValidationError("Cannot delete a used coupon")
        self.db.delete(coupon)
        self.db.commit()
        logger.info(f"Deleted coupon {coupon.code}")

    def list_coupons(
        self,
        status: CouponFilter = CouponFilter.ALL,
        search: Optional[str] = None,
        page_size: int = 100,
        page_number: int = 1,
    ) -> List[CouponCode]:
        query = self.db.query(CouponCode)
        if status == CouponFilter.USED:
            query = query.filter(CouponCode.is_used.is_(True))
        elif status == CouponFilter.AVAILABLE:
            query = query.filter(CouponCode.is_used.is_(False))
        if search:
            query = query.filter(CouponCode.code.contains(normalize_code(search)))
        offset = (page_number - 1) * page_size
        return (
            query.order_by(CouponCode.created_at.desc(), CouponCode.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

    def get_stats(self) -> CouponStats:
        total = self.db.query(CouponCode).count()
        used = self.db.query(CouponCode).filter(CouponCode.is_used.is_(True)).count()
        return CouponStats(total=total, used=used, available=total - used)
