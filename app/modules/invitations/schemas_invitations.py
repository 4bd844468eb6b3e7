"""Schemas file for the meeting invitations endpoints"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.modules.invitations.types_invitations import InvitationStatus
from app.utils import validators


class Attendee(BaseModel):
    email: EmailStr
    name: str | None = None

    _normalize_email = field_validator("email")(validators.email_normalizer)
    _normalize_name = field_validator("name")(validators.trailing_spaces_remover)


class InvitationsCreate(BaseModel):
    attendees: list[Attendee] = Field(min_length=1)


class InvitationResponse(BaseModel):
    status: InvitationStatus


class InvitationCapacity(BaseModel):
    can_invite: bool
    # Invitations which were not declined, the organizer is not included
    current_count: int
    room_capacity: int
    message: str | None = None


class MeetingInvitation(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    organizer_id: str
    invitee_email: str
    invitee_name: str | None
    status: InvitationStatus
    invited_at: datetime
    responded_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
