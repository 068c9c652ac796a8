from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from datetime import (
    datetime,
)
from typing import (
    Optional,
)
from pydantic_core import PydanticCustomError

from coupon_desk.constants import (
    AttendeeSource,
    ClaimantKind,
    RegistrationStatus,
    SyncStatus,
    SyncType,
)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_code(value: str) -> str:
    return value.strip().upper()


class ContactRequest(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
    )
    email: EmailStr

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise PydanticCustomError(
                "value_error",
                "Name must not be blank",
            )
        return v

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, v):
        return normalize_email(v)


class RegisterRequest(ContactRequest):
    pass


class RegisterResponse(BaseModel):
    success: bool = True
    registered: bool
    coupon_assigned: bool
    message: str


class AttendeeCreateRequest(ContactRequest):
    source: AttendeeSource = AttendeeSource.MANUAL


class CouponSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    is_used: bool
    used_at: Optional[datetime] = None


class CouponResponse(CouponSummary):
    used_by_kind: Optional[ClaimantKind] = None
    used_by_ref: Optional[str] = None
    created_at: Optional[datetime] = None


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    coupon_id: Optional[int] = None
    coupon: Optional[CouponSummary] = None
    source: AttendeeSource
    luma_guest_id: Optional[str] = None
    luma_event_id: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_email_sent_at: Optional[datetime] = None


class AttendeeStats(BaseModel):
    total: int
    with_coupon: int
    without_coupon: int


class CouponCreateRequest(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        max_length=255,
    )


class CouponBulkImportRequest(BaseModel):
    codes: str = Field(
        ...,
        description="Newline separated coupon codes",
    )


class CouponBulkImportResponse(BaseModel):
    imported: int
    errors: list[str] = []


class CouponStats(BaseModel):
    total: int
    used: int
    available: int


class AssignCouponResponse(BaseModel):
    success: bool = True
    coupon_code: str
    email_sent: bool = False
    message: str = "Coupon assigned successfully"


class ActionResponse(BaseModel):
    success: bool = True
    message: str | None = None


class AppSettingsUpdate(BaseModel):
    city_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
    )
    timezone: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    luma_event_id: Optional[str] = None
    luma_api_key: Optional[str] = None
    resend_api_key: Optional[str] = None


class AppSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    city_name: str
    timezone: str
    luma_event_id: Optional[str] = None
    luma_api_key: Optional[str] = None
    resend_api_key: Optional[str] = None
    updated_at: Optional[datetime] = None


class PublicSettingsResponse(BaseModel):
    city_name: str
    timezone: str


class LumaEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    luma_event_id: str
    name: str
    description: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    timezone: Optional[str] = None
    url: Optional[str] = None
    cover_url: Optional[str] = None
    guest_count: int = 0
    location_type: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    visibility: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class SyncLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    luma_event_id: Optional[str] = None
    sync_type: SyncType
    status: SyncStatus
    guests_synced: int
    guests_added: int
    guests_updated: int
    coupons_assigned: int
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ConfiguredEventResponse(BaseModel):
    configured: bool
    event_id: Optional[str] = None
    event: Optional[LumaEventResponse] = None
    sync_logs: list[SyncLogResponse] = []


class SetEventRequest(BaseModel):
    event_id: str = Field(
        ...,
        min_length=1,
        description="Luma event id or lu.ma URL",
    )


class LumaGuestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    luma_guest_id: str
    luma_event_id: str
    name: str
    email: str
    registration_status: RegistrationStatus
    approval_status: Optional[str] = None
    attendance_status: Optional[str] = None
    registered_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    coupon: Optional[CouponSummary] = None
    email_sent_at: Optional[datetime] = None


class SyncGuestsRequest(BaseModel):
    event_id: Optional[str] = None
    status: RegistrationStatus = RegistrationStatus.CONFIRMED


class SyncResult(BaseModel):
    success: bool = True
    guests_synced: int = 0
    guests_added: int = 0
    guests_updated: int = 0
    # Always 0: coupons are assigned per guest by an admin
    coupons_assigned: int = 0
    errors: list[str] = []


class SyncEventsResult(BaseModel):
    success: bool = True
    events_synced: int = 0
    errors: list[str] = []


class ConnectionTestResponse(BaseModel):
    success: bool
    user: Optional[dict] = None
    error: Optional[str] = None


class AdminRegisterRequest(ContactRequest):
    password: str = Field(
        ...,
        min_length=6,
    )
    registration_secret: str = Field(
        ...,
        min_length=1,
    )


class AdminRegisterResponse(BaseModel):
    success: bool = True
    message: str = "Admin account created successfully"
    first_admin: bool
    redirect: str


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return normalize_email(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
