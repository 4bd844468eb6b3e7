"""Models file for module issues"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.issues.types_issues import IssuePriority, IssueStatus
from app.types.sqlalchemy import Base, PrimaryKey

if TYPE_CHECKING:
    from app.core.users.models_users import CoreUser


class RoomIssue(Base):
    """A problem reported in a room, for example broken equipment, handled by the facility manager"""

    __tablename__ = "issues_room_issue"

    id: Mapped[PrimaryKey]
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities_room.id"),
        index=True,
    )
    # The booking during which the issue was noticed
    booking_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("booking.id"))
    reported_by_user_id: Mapped[str] = mapped_column(ForeignKey("core_user.id"))
    title: Mapped[str]
    description: Mapped[str]
    priority: Mapped[IssuePriority]
    status: Mapped[IssueStatus]
    resolution_notes: Mapped[str | None]
    resolved_at: Mapped[datetime | None]
    resolved_by_user_id: Mapped[str | None] = mapped_column(
        ForeignKey("core_user.id"),
    )
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    reported_by: Mapped["CoreUser"] = relationship(
        "CoreUser",
        foreign_keys=[reported_by_user_id],
        lazy="joined",
        init=False,
    )
