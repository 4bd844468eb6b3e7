import uuid
from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.notification.notification_types import NotificationType
from app.types.sqlalchemy import Base, PrimaryKey


class Notification(Base):
    __tablename__ = "notification"

    id: Mapped[PrimaryKey]
    user_id: Mapped[str] = mapped_column(ForeignKey("core_user.id"), index=True)
    title: Mapped[str]
    message: Mapped[str]
    type: Mapped[NotificationType]
    # Id of the booking or room the notification is about. It is not a foreign key:
    # a notification outlives the object it refers to
    related_id: Mapped[uuid.UUID | None] = mapped_column(index=True)
    is_read: Mapped[bool]
    created_at: Mapped[datetime]
