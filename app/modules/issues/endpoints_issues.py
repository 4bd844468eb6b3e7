import logging
import uuid
from datetime import UTC, datetime

from fastapi import Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.notification.notification_types import NotificationType
from app.core.notification.utils_notification import notify_user
from app.core.users import models_users
from app.dependencies import (
    get_db,
    get_request_id,
    is_user,
    is_user_a_manager,
)
from app.modules.booking import cruds_booking
from app.modules.facilities import cruds_facilities, models_facilities
from app.modules.issues import cruds_issues, models_issues, schemas_issues
from app.modules.issues.types_issues import IssueStatus
from app.types.module import Module
from app.utils.tools import is_user_manager_of_facility

module = Module(
    root="issues",
    tag="Room issues",
)

hub_booking_logger = logging.getLogger("hub.booking")


async def get_room_or_404(
    db: AsyncSession,
    room_id: uuid.UUID,
) -> models_facilities.Room:
    room = await cruds_facilities.get_room_by_id(db=db, room_id=room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


async def get_issue_or_404(
    db: AsyncSession,
    issue_id: uuid.UUID,
) -> models_issues.RoomIssue:
    issue = await cruds_issues.get_issue_by_id(db=db, issue_id=issue_id)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return issue


@module.router.get(
    "/rooms/{room_id}/issues",
    response_model=list[schemas_issues.RoomIssue],
    status_code=200,
)
async def get_room_issues(
    room_id: uuid.UUID,
    status: IssueStatus | None = None,
    limit: int = Query(default=50, gt=0, le=200),
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    Return the issues reported in a room, most recent first

    **The user must be authenticated to use this endpoint**
    """
    await get_room_or_404(db=db, room_id=room_id)
    return await cruds_issues.get_issues_by_room(
        db=db,
        room_id=room_id,
        limit=limit,
        status=status,
    )


@module.router.post(
    "/rooms/{room_id}/issues",
    response_model=schemas_issues.RoomIssue,
    status_code=201,
)
async def create_room_issue(
    room_id: uuid.UUID,
    issue: schemas_issues.RoomIssueBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
    request_id: str = Depends(get_request_id),
):
    """
    Report a problem in a room. The manager of the facility receives a notification.

    **The user must be authenticated to use this endpoint**
    """
    room = await get_room_or_404(db=db, room_id=room_id)
    if issue.booking_id is not None:
        booking = await cruds_booking.get_booking_by_id(
            db=db,
            booking_id=issue.booking_id,
        )
        if booking is None or booking.room_id != room_id:
            raise HTTPException(
                status_code=400,
                detail="The booking does not belong to this room",
            )

    now = datetime.now(UTC)
    issue_db = models_issues.RoomIssue(
        id=uuid.uuid4(),
        room_id=room_id,
        booking_id=issue.booking_id,
        reported_by_user_id=user.id,
        title=issue.title,
        description=issue.description,
        priority=issue.priority,
        status=IssueStatus.open,
        resolution_notes=None,
        resolved_at=None,
        resolved_by_user_id=None,
        created_at=now,
        updated_at=now,
    )
    await cruds_issues.create_issue(db=db, issue=issue_db)

    if room.facility.manager_id is not None:
        await notify_user(
            db=db,
            user_id=room.facility.manager_id,
            title=f"New {issue.priority.value} priority issue in {room.name}",
            message=issue.title,
            notification_type=NotificationType.room_maintenance,
            related_id=room_id,
        )
    hub_booking_logger.info(
        f"Create_room_issue: issue {issue_db.id} reported by {user.id} in room {room_id} ({request_id})",
    )
    return await get_issue_or_404(db=db, issue_id=issue_db.id)


@module.router.get(
    "/rooms/issues/{issue_id}",
    response_model=schemas_issues.RoomIssue,
    status_code=200,
)
async def get_room_issue(
    issue_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user()),
):
    """
    **The user must be authenticated to use this endpoint**
    """
    return await get_issue_or_404(db=db, issue_id=issue_id)


@module.router.patch(
    "/rooms/issues/{issue_id}",
    status_code=204,
)
async def update_room_issue(
    issue_id: uuid.UUID,
    issue_update: schemas_issues.RoomIssueUpdate,
    db: AsyncSession = Depends(get_db),
    user: models_users.CoreUser = Depends(is_user_a_manager),
    request_id: str = Depends(get_request_id),
):
    """
    Update the status, priority or resolution notes of an issue.
    Resolving or closing an issue records who settled it and when, reopening it clears them.

    **This endpoint is only usable by the manager of the facility and administrators**
    """
    issue = await get_issue_or_404(db=db, issue_id=issue_id)
    room = await get_room_or_404(db=db, room_id=issue.room_id)
    if not is_user_manager_of_facility(user, room.facility.manager_id):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage this facility",
        )

    now = datetime.now(UTC)
    values = issue_update.model_dump(exclude_none=True)
    values["updated_at"] = now
    if issue_update.status is not None and issue_update.status != issue.status:
        if issue_update.status.is_settled:
            values["resolved_at"] = now
            values["resolved_by_user_id"] = user.id
        else:
            values["resolved_at"] = None
            values["resolved_by_user_id"] = None

    await cruds_issues.update_issue(db=db, issue_id=issue_id, values=values)
    hub_booking_logger.info(
        f"Update_room_issue: issue {issue_id} updated by {user.id} ({request_id})",
    )
