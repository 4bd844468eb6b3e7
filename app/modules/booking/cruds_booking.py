"""File defining the functions called by the endpoints, making queries to the table using the models"""

import uuid
from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.booking import models_booking
from app.modules.booking.types_booking import BookingStatus
from app.modules.facilities import models_facilities


async def lock_room(db: AsyncSession, room_id: uuid.UUID) -> None:
    """
    Lock the room row until the end of the transaction, so two requests can not reserve the same window.

    SQLite ignores `FOR UPDATE`: its transactions begin with `BEGIN IMMEDIATE` and already hold
    the database write lock (see `app.utils.state.use_immediate_sqlite_transactions`).
    """
    # Only the id is selected: eager loaded outer joins can not be locked on PostgreSQL
    await db.execute(
        select(models_facilities.Room.id)
        .where(models_facilities.Room.id == room_id)
        .with_for_update(),
    )


async def get_bookings(
    db: AsyncSession,
    statuses: Collection[BookingStatus] | None = None,
    room_id: uuid.UUID | None = None,
) -> Sequence[models_booking.Booking]:
    query = select(models_booking.Booking)
    if statuses:
        query = query.where(models_booking.Booking.status.in_(statuses))
    if room_id is not None:
        query = query.where(models_booking.Booking.room_id == room_id)
    result = await db.execute(query.order_by(models_booking.Booking.start))
    return result.unique().scalars().all()


async def get_booking_by_id(
    db: AsyncSession,
    booking_id: uuid.UUID,
) -> models_booking.Booking | None:
    result = await db.execute(
        select(models_booking.Booking).where(models_booking.Booking.id == booking_id),
    )
    return result.unique().scalars().first()


async def get_bookings_by_user(
    db: AsyncSession,
    user_id: str,
) -> Sequence[models_booking.Booking]:
    result = await db.execute(
        select(models_booking.Booking)
        .where(models_booking.Booking.user_id == user_id)
        .order_by(models_booking.Booking.start.desc()),
    )
    return result.unique().scalars().all()


async def get_bookings_by_facilities(
    db: AsyncSession,
    facility_ids: Collection[uuid.UUID],
    statuses: Collection[BookingStatus] | None = None,
) -> Sequence[models_booking.Booking]:
    query = (
        select(models_booking.Booking)
        .join(
            models_facilities.Room,
            models_booking.Booking.room_id == models_facilities.Room.id,
        )
        .where(models_facilities.Room.facility_id.in_(facility_ids))
    )
    if statuses:
        query = query.where(models_booking.Booking.status.in_(statuses))
    result = await db.execute(query.order_by(models_booking.Booking.start))
    return result.unique().scalars().all()


async def get_bookings_in_window(
    db: AsyncSession,
    room_ids: Collection[uuid.UUID],
    start: datetime,
    end: datetime,
    statuses: Collection[BookingStatus],
    exclude_booking_id: uuid.UUID | None = None,
) -> Sequence[models_booking.Booking]:
    """
    Return bookings of the rooms overlapping `[start, end)` whose status is in `statuses`.

    This is a coarse prefilter: callers widen the window by the buffer and run the exact checks.
    """
    query = select(models_booking.Booking).where(
        models_booking.Booking.room_id.in_(room_ids),
        models_booking.Booking.status.in_(statuses),
        models_booking.Booking.start < end,
        models_booking.Booking.end > start,
    )
    if exclude_booking_id is not None:
        query = query.where(models_booking.Booking.id != exclude_booking_id)
    result = await db.execute(query.order_by(models_booking.Booking.start))
    return result.unique().scalars().all()


async def count_user_bookings(
    db: AsyncSession,
    user_id: str,
    room_id: uuid.UUID,
    start: datetime,
    end: datetime,
    statuses: Collection[BookingStatus],
    exclude_booking_id: uuid.UUID | None = None,
) -> int:
    """
    Count the bookings of a user on a room starting in `[start, end)`
    """
    query = select(func.count()).where(
        models_booking.Booking.user_id == user_id,
        models_booking.Booking.room_id == room_id,
        models_booking.Booking.status.in_(statuses),
        models_booking.Booking.start >= start,
        models_booking.Booking.start < end,
    )
    if exclude_booking_id is not None:
        query = query.where(models_booking.Booking.id != exclude_booking_id)
    result = await db.execute(query)
    return result.scalar_one()


async def has_future_bookings(
    db: AsyncSession,
    room_id: uuid.UUID,
    now: datetime,
    statuses: Collection[BookingStatus],
) -> bool:
    result = await db.execute(
        select(models_booking.Booking.id)
        .where(
            models_booking.Booking.room_id == room_id,
            models_booking.Booking.status.in_(statuses),
            models_booking.Booking.end > now,
        )
        .limit(1),
    )
    return result.scalars().first() is not None


async def get_pending_bookings_started_before(
    db: AsyncSession,
    now: datetime,
) -> Sequence[models_booking.Booking]:
    result = await db.execute(
        select(models_booking.Booking).where(
            models_booking.Booking.status == BookingStatus.pending,
            models_booking.Booking.start < now,
        ),
    )
    return result.unique().scalars().all()


async def get_unchecked_confirmed_bookings_started_before(
    db: AsyncSession,
    threshold: datetime,
) -> Sequence[models_booking.Booking]:
    """
    Return confirmed bookings nobody checked in, which started at or before `threshold`
    """
    result = await db.execute(
        select(models_booking.Booking).where(
            models_booking.Booking.status == BookingStatus.confirmed,
            models_booking.Booking.checked_in_at.is_(None),
            models_booking.Booking.start <= threshold,
        ),
    )
    return result.unique().scalars().all()


async def get_confirmed_bookings_starting_between(
    db: AsyncSession,
    start: datetime,
    end: datetime,
) -> Sequence[models_booking.Booking]:
    result = await db.execute(
        select(models_booking.Booking)
        .where(
            models_booking.Booking.status == BookingStatus.confirmed,
            models_booking.Booking.start >= start,
            models_booking.Booking.start < end,
        )
        .order_by(models_booking.Booking.start),
    )
    return result.unique().scalars().all()


async def get_booking_creation_dates_of_facility(
    db: AsyncSession,
    facility_id: uuid.UUID,
    since: datetime,
) -> Sequence[datetime]:
    """
    Return the creation date of every booking of the rooms of the facility created since `since`
    """
    result = await db.execute(
        select(models_booking.Booking.created_at)
        .join(
            models_facilities.Room,
            models_booking.Booking.room_id == models_facilities.Room.id,
        )
        .where(
            models_facilities.Room.facility_id == facility_id,
            models_booking.Booking.created_at >= since,
        ),
    )
    return result.scalars().all()


async def update_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    values: dict[str, Any],
) -> None:
    await db.execute(
        update(models_booking.Booking)
        .where(models_booking.Booking.id == booking_id)
        .values(**values),
    )
    await db.flush()


async def cancel_bookings(
    db: AsyncSession,
    booking_ids: Collection[uuid.UUID],
    reason: str,
    now: datetime,
) -> None:
    await db.execute(
        update(models_booking.Booking)
        .where(models_booking.Booking.id.in_(booking_ids))
        .values(
            status=BookingStatus.cancelled,
            rejection_reason=reason,
            updated_at=now,
        ),
    )
    await db.flush()


async def delete_booking(db: AsyncSession, booking_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_booking.Booking).where(models_booking.Booking.id == booking_id),
    )
    await db.flush()


async def delete_bookings_of_room(db: AsyncSession, room_id: uuid.UUID) -> None:
    await db.execute(
        delete(models_booking.Booking).where(
            models_booking.Booking.room_id == room_id,
        ),
    )
    await db.flush()
