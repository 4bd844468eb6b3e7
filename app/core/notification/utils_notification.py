import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.notification import cruds_notification, models_notification
from app.core.notification.notification_types import NotificationType


async def notify_user(
    db: AsyncSession,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType,
    related_id: uuid.UUID | None = None,
) -> models_notification.Notification:
    """
    Add an unread in-app notification for `user_id`.

    The notification belongs to the current transaction: it is only saved if the request succeeds.
    """
    notification = models_notification.Notification(
        id=uuid.uuid4(),
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        related_id=related_id,
        is_read=False,
        created_at=datetime.now(UTC),
    )
    await cruds_notification.create_notification(db=db, notification=notification)
    return notification
