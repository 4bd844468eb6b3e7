"""File defining the functions called by the endpoints, making queries to the table using the models"""

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.issues import models_issues
from app.modules.issues.types_issues import IssueStatus


async def create_issue(db: AsyncSession, issue: models_issues.RoomIssue) -> None:
    db.add(issue)
    await db.flush()


async def get_issues_by_room(
    db: AsyncSession,
    room_id: uuid.UUID,
    limit: int,
    status: IssueStatus | None = None,
) -> Sequence[models_issues.RoomIssue]:
    query = select(models_issues.RoomIssue).where(
        models_issues.RoomIssue.room_id == room_id,
    )
    if status is not None:
        query = query.where(models_issues.RoomIssue.status == status)
    result = await db.execute(
        query.order_by(models_issues.RoomIssue.created_at.desc()).limit(limit),
    )
    return result.unique().scalars().all()


async def get_issue_by_id(
    db: AsyncSession,
    issue_id: uuid.UUID,
) -> models_issues.RoomIssue | None:
    # An issue created in the same transaction is already in the session without its reporter
    result = await db.execute(
        select(models_issues.RoomIssue)
        .where(models_issues.RoomIssue.id == issue_id)
        .execution_options(populate_existing=True),
    )
    return result.unique().scalars().first()


async def update_issue(
    db: AsyncSession,
    issue_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    await db.execute(
        update(models_issues.RoomIssue)
        .where(models_issues.RoomIssue.id == issue_id)
        .values(**values),
    )
    await db.flush()


async def unlink_booking(db: AsyncSession, booking_id: uuid.UUID) -> None:
    """Issues outlive the booking during which they were reported"""
    await db.execute(
        update(models_issues.RoomIssue)
        .where(models_issues.RoomIssue.booking_id == booking_id)
        .values(booking_id=None),
    )
    await db.flush()


async def delete_issues_of_room(db: AsyncSession, room_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_issues.RoomIssue).where(
            models_issues.RoomIssue.room_id == room_id,
        ),
    )
    await db.flush()
