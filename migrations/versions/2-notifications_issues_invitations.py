"""notifications, room issues and meeting invitations

Create Date: 2026-10-19 09:41:07.118204
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from app.types.sqlalchemy import TZDateTime

# revision identifiers, used by Alembic.
revision: str = "8b2d6e0f4a13"
down_revision: str | None = "3c1f9e7a52d4"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


notification_type = sa.Enum(
    "booking_confirmation",
    "booking_rejection",
    "booking_reminder",
    "room_maintenance",
    "system_notification",
    "booking_request",
    "pending_approval",
    name="notificationtype",
)
issue_priority = sa.Enum("low", "medium", "high", "urgent", name="issuepriority")
issue_status = sa.Enum(
    "open",
    "in_progress",
    "resolved",
    "closed",
    name="issuestatus",
)
invitation_status = sa.Enum(
    "pending",
    "accepted",
    "declined",
    name="invitationstatus",
)


def upgrade() -> None:
    op.create_table(
        "notification",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("related_id", sa.Uuid(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", TZDateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["core_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_notification_user_id"),
        "notification",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_notification_related_id"),
        "notification",
        ["related_id"],
        unique=False,
    )

    op.create_table(
        "issues_room_issue",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("booking_id", sa.Uuid(), nullable=True),
        sa.Column("reported_by_user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("priority", issue_priority, nullable=False),
        sa.Column("status", issue_status, nullable=False),
        sa.Column("resolution_notes", sa.String(), nullable=True),
        sa.Column("resolved_at", TZDateTime(), nullable=True),
        sa.Column("resolved_by_user_id", sa.String(), nullable=True),
        sa.Column("created_at", TZDateTime(), nullable=False),
        sa.Column("updated_at", TZDateTime(), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["booking.id"]),
        sa.ForeignKeyConstraint(["reported_by_user_id"], ["core_user.id"]),
        sa.ForeignKeyConstraint(["resolved_by_user_id"], ["core_user.id"]),
        sa.ForeignKeyConstraint(["room_id"], ["facilities_room.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_issues_room_issue_room_id"),
        "issues_room_issue",
        ["room_id"],
        unique=False,
    )

    op.create_table(
        "invitations_meeting_invitation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("booking_id", sa.Uuid(), nullable=False),
        sa.Column("organizer_id", sa.String(), nullable=False),
        sa.Column("invitee_email", sa.String(), nullable=False),
        sa.Column("invitee_name", sa.String(), nullable=True),
        sa.Column("status", invitation_status, nullable=False),
        sa.Column("invited_at", TZDateTime(), nullable=False),
        sa.Column("responded_at", TZDateTime(), nullable=True),
        sa.ForeignKeyConstraint(["booking_id"], ["booking.id"]),
        sa.ForeignKeyConstraint(["organizer_id"], ["core_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_invitations_meeting_invitation_booking_id"),
        "invitations_meeting_invitation",
        ["booking_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("invitations_meeting_invitation")
    op.drop_table("issues_room_issue")
    op.drop_table("notification")

    for enum in (invitation_status, issue_status, issue_priority, notification_type):
        enum.drop(op.get_bind(), checkfirst=True)
