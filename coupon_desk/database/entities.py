from datetime import (
    UTC,
    datetime,
)
from sqlalchemy import (
    Boolean,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)
from ..constants import (
    AttendeeSource,
    ClaimantKind,
    RegistrationStatus,
    SyncStatus,
    SyncType,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class CouponCode(Base):
    __tablename__ = "coupon_codes"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    # Stored trimmed and upper-cased
    code: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    is_used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    used_by_kind: Mapped[ClaimantKind | None] = mapped_column(
        String(32),
        nullable=True,
    )
    # Attendee id or Luma guest id, depending on used_by_kind
    used_by_ref: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class Attendee(Base):
    __tablename__ = "attendees"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    # Stored lower-cased
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    coupon_id: Mapped[int | None] = mapped_column(
        ForeignKey("coupon_codes.id"),
        unique=True,
        nullable=True,
    )
    source: Mapped[AttendeeSource] = mapped_column(
        String(32),
        default=AttendeeSource.WEBSITE,
        nullable=False,
    )
    luma_guest_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    luma_event_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    last_email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    coupon: Mapped[CouponCode | None] = relationship("CouponCode")


class LumaEvent(Base):
    __tablename__ = "luma_events"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    luma_event_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    start_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    timezone: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    url: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    cover_url: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    guest_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    location_type: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    location_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    location_address: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    visibility: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class LumaGuest(Base):
    __tablename__ = "luma_guests"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    luma_guest_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    luma_event_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    guest_key: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    # Stored lower-cased
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    registration_status: Mapped[RegistrationStatus] = mapped_column(
        String(32),
        nullable=False,
    )
    approval_status: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    attendance_status: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    registered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    coupon_id: Mapped[int | None] = mapped_column(
        ForeignKey("coupon_codes.id"),
        unique=True,
        nullable=True,
    )
    email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    coupon: Mapped[CouponCode | None] = relationship("CouponCode")


class LumaSyncLog(Base):
    __tablename__ = "luma_sync_logs"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    luma_event_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    sync_type: Mapped[SyncType] = mapped_column(
        String(32),
        default=SyncType.MANUAL,
        nullable=False,
    )
    status: Mapped[SyncStatus] = mapped_column(
        String(32),
        default=SyncStatus.STARTED,
        nullable=False,
    )
    guests_synced: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    guests_added: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    guests_updated: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    coupons_assigned: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class AppSettings(Base):
    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(
        primary_key=True,
    )
    city_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    timezone: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    luma_event_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    luma_api_key: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    resend_api_key: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class Admin(Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
