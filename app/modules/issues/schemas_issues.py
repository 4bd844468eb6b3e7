"""Schemas file for the room issues endpoints"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from app.core.users.schemas_users import CoreUserSimple
from app.modules.issues.types_issues import IssuePriority, IssueStatus
from app.utils import validators


class RoomIssueBase(BaseModel):
    title: str
    description: str
    priority: IssuePriority = IssuePriority.medium
    booking_id: uuid.UUID | None = None

    _normalize_text = field_validator("title", "description")(
        validators.required_text,
    )


class RoomIssueUpdate(BaseModel):
    status: IssueStatus | None = None
    priority: IssuePriority | None = None
    resolution_notes: str | None = None

    _normalize_notes = field_validator("resolution_notes")(
        validators.trailing_spaces_remover,
    )


class RoomIssue(RoomIssueBase):
    id: uuid.UUID
    room_id: uuid.UUID
    reported_by_user_id: str
    status: IssueStatus
    resolution_notes: str | None
    resolved_at: datetime | None
    resolved_by_user_id: str | None
    created_at: datetime
    updated_at: datetime

    reported_by: CoreUserSimple

    model_config = ConfigDict(from_attributes=True)
