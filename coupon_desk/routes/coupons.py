from typing import (
    Annotated,
    List,
    Optional,
)
from fastapi import (
    APIRouter,
    Depends,
    Query,
)

from ..auth import AdminUser
from ..constants import CouponFilter
from ..dependencies import get_coupon_service
from ..exceptions import CouponDeskError
from ..models import (
    ActionResponse,
    CouponBulkImportRequest,
    CouponBulkImportResponse,
    CouponCreateRequest,
    CouponResponse,
    CouponStats,
)
from ..services.coupon_service import CouponService
from .errors import (
    http_error,
    internal_error,
)

router = APIRouter()


@router.get("")
def get_coupons(
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
    status: CouponFilter = Query(CouponFilter.ALL),
    search: Optional[str] = Query(None),
    page_size: int = Query(
        100,
        gt=0,
        le=1000,
    ),
    page_number: int = Query(
        1,
        gt=0,
    ),
) -> List[CouponResponse]:
    coupons = coupon_service.list_coupons(
        status=status,
        search=search,
        page_size=page_size,
        page_number=page_number,
    )
    return [CouponResponse.model_validate(c) for c in coupons]


@router.post("", status_code=201)
def create_coupon(
    body: CouponCreateRequest,
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
) -> CouponResponse:
    try:
        return CouponResponse.model_validate(coupon_service.create_coupon(body.code))
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("create_coupon", e)


@router.get("/stats")
def get_coupon_stats(
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
) -> CouponStats:
    return coupon_service.get_stats()


@router.post("/bulk")
def bulk_import(
    body: CouponBulkImportRequest,
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
) -> CouponBulkImportResponse:
    """
    Import newline separated codes. Duplicates are reported per line and do
    not stop the rest of the import.
    """
    try:
        return coupon_service.bulk_import(body.codes)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("bulk_import", e)


@router.put("/{coupon_id}")
def update_coupon(
    coupon_id: int,
    body: CouponCreateRequest,
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
) -> CouponResponse:
    try:
        coupon = coupon_service.update_coupon(coupon_id, body.code)
        return CouponResponse.model_validate(coupon)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("update_coupon", e)


@router.delete("/{coupon_id}")
def delete_coupon(
    coupon_id: int,
    admin: AdminUser,
    coupon_service: Annotated[
        CouponService,
        Depends(get_coupon_service),
    ],
) -> ActionResponse:
    try:
        coupon_service.delete_coupon(coupon_id)
        return ActionResponse(message="Coupon deleted")
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("delete_coupon", e)
