import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.notification import (
    cruds_notification,
    models_notification,
    schemas_notification,
)
from app.core.notification.utils_notification import notify_user
from app.core.users import cruds_users, models_users
from app.dependencies import (
    get_db,
    get_request_id,
    is_user,
    is_user_an_admin,
)
from app.types.module import CoreModule

router = APIRouter(tags=["Notifications"])

core_module = CoreModule(
    root="notification",
    tag="Notifications",
    router=router,
)

hub_security_logger = logging.getLogger("hub.security")


async def get_own_notification_or_404(
    db: AsyncSession,
    notification_id: uuid.UUID,
    user: models_users.CoreUser,
) -> models_notification.Notification:
    notification = await cruds_notification.get_notification_by_id(
        db=db,
        notification_id=notification_id,
    )
    # Notifications of other users are reported as missing, they should not be discoverable
    if notification is None or notification.user_id != user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get(
    "/notifications",
    response_model=list[schemas_notification.Notification],
    status_code=200,
)
async def get_notifications(
    limit: int = Query(default=50, gt=0, le=200),
    offset: int = Query(default=0, ge=0),
    unread: bool = False,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the notifications of the current user, most recent first.
    With `unread`, only unread notifications are returned.

    **The user must be authenticated to use this endpoint**
    """
    return await cruds_notification.get_notifications_by_user(
        db=db,
        user_id=user.id,
        limit=limit,
        offset=offset,
        unread_only=unread,
    )


@router.post(
    "/notifications",
    response_model=schemas_notification.Notification,
    status_code=201,
)
async def create_notification(
    notification: schemas_notification.NotificationCreate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_an_admin),
    request_id: str = Depends(get_request_id),
):
    """
    Send a notification to a user

    **This endpoint is only usable by administrators**
    """
    recipient = await cruds_users.get_user_by_id(db=db, user_id=notification.user_id)
    if recipient is None:
        raise HTTPException(status_code=404, detail="User not found")

    notification_db = await notify_user(
        db=db,
        user_id=recipient.id,
        title=notification.title,
        message=notification.message,
        notification_type=notification.type,
        related_id=notification.related_id,
    )
    hub_security_logger.info(
        f"Create_notification: {user.id} sent notification {notification_db.id} to {recipient.id} ({request_id})",
    )
    return notification_db


@router.patch(
    "/notifications/{notification_id}",
    status_code=204,
)
async def edit_notification(
    notification_id: uuid.UUID,
    notification_edit: schemas_notification.NotificationEdit,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Mark a notification as read or unread

    **This endpoint is only usable by the recipient of the notification**
    """
    await get_own_notification_or_404(db=db, notification_id=notification_id, user=user)
    await cruds_notification.update_notification(
        db=db,
        notification_id=notification_id,
        is_read=notification_edit.is_read,
    )


@router.delete(
    "/notifications/{notification_id}",
    status_code=204,
)
async def delete_notification(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **This endpoint is only usable by the recipient of the notification**
    """
    await get_own_notification_or_404(db=db, notification_id=notification_id, user=user)
    await cruds_notification.delete_notification(
        db=db,
        notification_id=notification_id,
    )
