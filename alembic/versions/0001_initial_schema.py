"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "coupon_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(255), nullable=False, unique=True),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_by_kind", sa.String(32), nullable=True),
        sa.Column("used_by_ref", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_coupon_codes_id", "coupon_codes", ["id"])
    op.create_index("ix_coupon_codes_is_used", "coupon_codes", ["is_used"])

    op.create_table(
        "attendees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column(
            "coupon_id",
            sa.Integer(),
            sa.ForeignKey("coupon_codes.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("luma_guest_id", sa.String(255), nullable=True),
        sa.Column("luma_event_id", sa.String(255), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_email_sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_attendees_id", "attendees", ["id"])

    op.create_table(
        "luma_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("luma_event_id", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timezone", sa.String(100), nullable=True),
        sa.Column("url", sa.String(), nullable=True),
        sa.Column("cover_url", sa.String(), nullable=True),
        sa.Column("guest_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("location_type", sa.String(32), nullable=True),
        sa.Column("location_name", sa.String(255), nullable=True),
        sa.Column("location_address", sa.String(), nullable=True),
        sa.Column("visibility", sa.String(32), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_luma_events_id", "luma_events", ["id"])

    op.create_table(
        "luma_guests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("luma_guest_id", sa.String(255), nullable=False, unique=True),
        sa.Column("luma_event_id", sa.String(255), nullable=False),
        sa.Column("guest_key", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("registration_status", sa.String(32), nullable=False),
        sa.Column("approval_status", sa.String(32), nullable=True),
        sa.Column("attendance_status", sa.String(32), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "coupon_id",
            sa.Integer(),
            sa.ForeignKey("coupon_codes.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("email_sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_luma_guests_id", "luma_guests", ["id"])
    op.create_index("ix_luma_guests_luma_event_id", "luma_guests", ["luma_event_id"])

    op.create_table(
        "luma_sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("luma_event_id", sa.String(255), nullable=True),
        sa.Column("sync_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("guests_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("guests_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("guests_updated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("coupons_assigned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_luma_sync_logs_id", "luma_sync_logs", ["id"])
    op.create_index(
        "ix_luma_sync_logs_luma_event_id", "luma_sync_logs", ["luma_event_id"]
    )

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("city_name", sa.String(255), nullable=False),
        sa.Column("timezone", sa.String(100), nullable=False),
        sa.Column("luma_event_id", sa.String(255), nullable=True),
        sa.Column("luma_api_key", sa.String(), nullable=True),
        sa.Column("resend_api_key", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_admins_id", "admins", ["id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("admins")
    op.drop_table("app_settings")
    op.drop_table("luma_sync_logs")
    op.drop_table("luma_guests")
    op.drop_table("luma_events")
    op.drop_table("attendees")
    op.drop_table("coupon_codes")
