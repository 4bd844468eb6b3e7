"""Models file for module invitations"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.invitations.types_invitations import InvitationStatus
from app.types.sqlalchemy import Base, PrimaryKey


class MeetingInvitation(Base):
    __tablename__ = "invitations_meeting_invitation"

    id: Mapped[PrimaryKey]
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("booking.id"),
        index=True,
    )
    organizer_id: Mapped[str] = mapped_column(ForeignKey("core_user.id"))
    # Invitees do not need an account
    invitee_email: Mapped[str]
    invitee_name: Mapped[str | None]
    status: Mapped[InvitationStatus]
    invited_at: Mapped[datetime]
    responded_at: Mapped[datetime | None]
