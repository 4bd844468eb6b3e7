"""initial schema

Create Date: 2026-09-28 10:12:41.524301
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from app.types.sqlalchemy import TZDateTime

# revision identifiers, used by Alembic.
revision: str = "3c1f9e7a52d4"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


user_role = sa.Enum("user", "facility_manager", "admin", name="userrole")
room_status = sa.Enum("available", "maintenance", "reserved", name="roomstatus")
resource_status = sa.Enum(
    "available",
    "in_use",
    "maintenance",
    name="resourcestatus",
)
blackout_type = sa.Enum(
    "maintenance",
    "cleaning",
    "event",
    "holiday",
    "repair",
    "other",
    name="blackouttype",
)
weekday = sa.Enum(
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
    name="weekday",
)
booking_status = sa.Enum("pending", "confirmed", "cancelled", name="bookingstatus")
payment_status = sa.Enum("not_required", "unpaid", "paid", name="paymentstatus")


def upgrade() -> None:
    op.create_table(
        "core_user",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("created_on", TZDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_core_user_id"), "core_user", ["id"], unique=False)
    op.create_index(op.f("ix_core_user_email"), "core_user", ["email"], unique=True)

    op.create_table(
        "facilities_facility",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("manager_id", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["manager_id"], ["core_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(
        op.f("ix_facilities_facility_manager_id"),
        "facilities_facility",
        ["manager_id"],
        unique=False,
    )

    op.create_table(
        "facilities_room",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("facility_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", room_status, nullable=False),
        sa.Column("hourly_rate", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["facility_id"], ["facilities_facility.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_facilities_room_facility_id"),
        "facilities_room",
        ["facility_id"],
        unique=False,
    )

    op.create_table(
        "facilities_resource",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", resource_status, nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("facility_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["facility_id"], ["facilities_facility.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "facilities_room_resource",
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["resource_id"], ["facilities_resource.id"]),
        sa.ForeignKeyConstraint(["room_id"], ["facilities_room.id"]),
        sa.PrimaryKeyConstraint("room_id", "resource_id"),
    )

    op.create_table(
        "facilities_room_availability",
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("min_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("max_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False),
        sa.Column("advance_booking_days", sa.Integer(), nullable=False),
        sa.Column("same_day_booking_enabled", sa.Boolean(), nullable=False),
        sa.Column("max_bookings_per_user_per_day", sa.Integer(), nullable=True),
        sa.Column("max_bookings_per_user_per_week", sa.Integer(), nullable=True),
        sa.Column("updated_on", TZDateTime(), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["facilities_room.id"]),
        sa.PrimaryKeyConstraint("room_id"),
    )

    op.create_table(
        "facilities_room_operating_hours",
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("weekday", weekday, nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("opening", sa.Time(), nullable=False),
        sa.Column("closing", sa.Time(), nullable=False),
        sa.ForeignKeyConstraint(
            ["room_id"],
            ["facilities_room_availability.room_id"],
        ),
        sa.PrimaryKeyConstraint("room_id", "weekday"),
    )

    op.create_table(
        "facilities_room_blackout",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start", TZDateTime(), nullable=False),
        sa.Column("end", TZDateTime(), nullable=False),
        sa.Column("blackout_type", blackout_type, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["core_user.id"]),
        sa.ForeignKeyConstraint(["room_id"], ["facilities_room.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_facilities_room_blackout_room_id"),
        "facilities_room_blackout",
        ["room_id"],
        unique=False,
    )

    op.create_table(
        "booking",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start", TZDateTime(), nullable=False),
        sa.Column("end", TZDateTime(), nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("attendees", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(), nullable=True),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("checked_in_at", TZDateTime(), nullable=True),
        sa.Column("created_at", TZDateTime(), nullable=False),
        sa.Column("updated_at", TZDateTime(), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["facilities_room.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["core_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_booking_room_id"), "booking", ["room_id"], unique=False)
    op.create_index(op.f("ix_booking_user_id"), "booking", ["user_id"], unique=False)
    op.create_index(op.f("ix_booking_start"), "booking", ["start"], unique=False)


def downgrade() -> None:
    op.drop_table("booking")
    op.drop_table("facilities_room_blackout")
    op.drop_table("facilities_room_operating_hours")
    op.drop_table("facilities_room_availability")
    op.drop_table("facilities_room_resource")
    op.drop_table("facilities_resource")
    op.drop_table("facilities_room")
    op.drop_table("facilities_facility")
    op.drop_table("core_user")

    for enum in (
        payment_status,
        booking_status,
        weekday,
        blackout_type,
        resource_status,
        room_status,
        user_role,
    ):
        enum.drop(op.get_bind(), checkfirst=True)
