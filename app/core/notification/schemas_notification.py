import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.core.notification.notification_types import NotificationType


class NotificationBase(BaseModel):
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: NotificationType = NotificationType.system_notification
    related_id: uuid.UUID | None = None


class NotificationCreate(NotificationBase):
    user_id: str = Field(description="The user who will receive the notification")


class NotificationEdit(BaseModel):
    is_read: bool


class Notification(NotificationBase):
    id: uuid.UUID
    user_id: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
