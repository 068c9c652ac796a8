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
from fastapi.responses import Response

from ..auth import AdminUser
from ..constants import AssignmentFilter
from ..dependencies import get_attendee_service
from ..exceptions import CouponDeskError
from ..models import (
    ActionResponse,
    AssignCouponResponse,
    AttendeeCreateRequest,
    AttendeeResponse,
    AttendeeStats,
)
from ..services.attendee_service import AttendeeService
from .errors import (
    http_error,
    internal_error,
)

router = APIRouter()


@router.get("")
def get_attendees(
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
    search: Optional[str] = Query(None),
    coupon: AssignmentFilter = Query(AssignmentFilter.ALL),
    page_size: int = Query(
        100,
        gt=0,
        le=1000,
    ),
    page_number: int = Query(
        1,
        gt=0,
    ),
) -> List[AttendeeResponse]:
    attendees = attendee_service.list_attendees(
        search=search,
        coupon_filter=coupon,
        page_size=page_size,
        page_number=page_number,
    )
    return [AttendeeResponse.model_validate(a) for a in attendees]


@router.post("", status_code=201)
def create_attendee(
    body: AttendeeCreateRequest,
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
) -> AttendeeResponse:
    try:
        attendee = attendee_service.create_attendee(
            body.name,
            body.email,
            source=body.source,
        )
        return AttendeeResponse.model_validate(attendee)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("create_attendee", e)


@router.get("/stats")
def get_attendee_stats(
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
) -> AttendeeStats:
    return attendee_service.get_stats()


@router.get("/export")
def export_attendees(
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
):
    """Download all attendees as CSV."""
    return Response(
        content=attendee_service.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="attendees.csv"'},
    )


@router.delete("/{attendee_id}")
def delete_attendee(
    attendee_id: int,
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
) -> ActionResponse:
    try:
        attendee_service.delete_attendee(attendee_id)
        return ActionResponse(message="Attendee deleted")
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("delete_attendee", e)


@router.post("/{attendee_id}/assign-coupon")
async def assign_coupon(
    attendee_id: int,
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
) -> AssignCouponResponse:
    try:
        coupon, email_sent = await attendee_service.assign_coupon(attendee_id)
        return AssignCouponResponse(coupon_code=coupon.code, email_sent=email_sent)
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("assign_coupon", e)


@router.post("/{attendee_id}/send-email")
async def send_email(
    attendee_id: int,
    admin: AdminUser,
    attendee_service: Annotated[
        AttendeeService,
        Depends(get_attendee_service),
    ],
) -> ActionResponse:
    try:
        await attendee_service.send_email(attendee_id)
        return ActionResponse(message="Email sent successfully")
    except CouponDeskError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error("send_email", e)
