import uuid
from collections.abc import Collection, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.notification import models_notification
from app.core.notification.notification_types import NotificationType


async def create_notification(
    db: AsyncSession,
    notification: models_notification.Notification,
) -> None:
    db.add(notification)
    await db.flush()


async def get_notifications_by_user(
    db: AsyncSession,
    user_id: str,
    limit: int,
    offset: int = 0,
    unread_only: bool = False,
) -> Sequence[models_notification.Notification]:
    query = select(models_notification.Notification).where(
        models_notification.Notification.user_id == user_id,
    )
    if unread_only:
        query = query.where(models_notification.Notification.is_read.is_(False))
    result = await db.execute(
        query.order_by(models_notification.Notification.created_at.desc())
        .offset(offset)
        .limit(limit),
    )
    return result.scalars().all()


async def get_notification_by_id(
    db: AsyncSession,
    notification_id: uuid.UUID,
) -> models_notification.Notification | None:
    result = await db.execute(
        select(models_notification.Notification).where(
            models_notification.Notification.id == notification_id,
        ),
    )
    return result.scalars().first()


async def get_notified_related_ids(
    db: AsyncSession,
    notification_type: NotificationType,
    related_ids: Collection[uuid.UUID],
) -> set[uuid.UUID]:
    """
    Return the ids among `related_ids` for which a notification of this type already exists
    """
    result = await db.execute(
        select(models_notification.Notification.related_id).where(
            models_notification.Notification.type == notification_type,
            models_notification.Notification.related_id.in_(related_ids),
        ),
    )
    return {related_id for related_id in result.scalars().all() if related_id}


async def update_notification(
    db: AsyncSession,
    notification_id: uuid.UUID,
    is_read: bool,
) -> None:
    await db.execute(
        update(models_notification.Notification)
        .where(models_notification.Notification.id == notification_id)
        .values(is_read=is_read),
    )
    await db.flush()


async def delete_notification(
    db: AsyncSession,
    notification_id: uuid.UUID,
) -> None:
    await db.execute(
        delete(models_notification.Notification).where(
            models_notification.Notification.id == notification_id,
        ),
    )
    await db.flush()
