"""File defining the functions called by the endpoints, making queries to the table using the models"""

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.booking import models_booking
from app.modules.invitations import models_invitations
from app.modules.invitations.types_invitations import InvitationStatus


async def create_invitations(
    db: AsyncSession,
    invitations: Sequence[models_invitations.MeetingInvitation],
) -> None:
    db.add_all(invitations)
    await db.flush()


async def get_invitations_by_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
) -> Sequence[models_invitations.MeetingInvitation]:
    result = await db.execute(
        select(models_invitations.MeetingInvitation)
        .where(models_invitations.MeetingInvitation.booking_id == booking_id)
        .order_by(models_invitations.MeetingInvitation.invited_at.desc()),
    )
    return result.scalars().all()


async def get_invitation_by_id(
    db: AsyncSession,
    invitation_id: uuid.UUID,
) -> models_invitations.MeetingInvitation | None:
    result = await db.execute(
        select(models_invitations.MeetingInvitation).where(
            models_invitations.MeetingInvitation.id == invitation_id,
        ),
    )
    return result.scalars().first()


async def count_active_invitations(db: AsyncSession, booking_id: uuid.UUID) -> int:
    """Declined invitations do not take a seat"""
    result = await db.execute(
        select(func.count()).where(
            models_invitations.MeetingInvitation.booking_id == booking_id,
            models_invitations.MeetingInvitation.status != InvitationStatus.declined,
        ),
    )
    return result.scalar_one()


async def update_invitation_status(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    status: InvitationStatus,
    responded_at: datetime,
) -> None:
    await db.execute(
        update(models_invitations.MeetingInvitation)
        .where(models_invitations.MeetingInvitation.id == invitation_id)
        .values(status=status, responded_at=responded_at),
    )
    await db.flush()


async def delete_invitations_of_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
) -> None:
    await db.execute(
        delete(models_invitations.MeetingInvitation).where(
            models_invitations.MeetingInvitation.booking_id == booking_id,
        ),
    )
    await db.flush()


async def delete_invitations_of_room(db: AsyncSession, room_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_invitations.MeetingInvitation).where(
            models_invitations.MeetingInvitation.booking_id.in_(
                select(models_booking.Booking.id).where(
                    models_booking.Booking.room_id == room_id,
                ),
            ),
        ),
    )
    await db.flush()
