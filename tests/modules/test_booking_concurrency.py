import asyncio
import uuid
from datetime import UTC, datetime, timedelta

import pytest_asyncio

from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.modules.booking import cruds_booking, models_booking, utils_booking
from app.modules.booking.types_booking import (
    BlockingPolicy,
    BookingStatus,
    PaymentStatus,
)
from app.modules.facilities import models_facilities
from app.modules.facilities.types_facilities import RoomStatus
from app.types.exceptions import BookingConflictError
from tests.commons import (
    TestingSessionLocal,
    add_object_to_db,
    create_user_with_role,
)

BUFFER = timedelta(minutes=30)
BLOCKING_STATUSES = BlockingPolicy.confirmed_and_pending.statuses()

first_user: models_users.CoreUser
second_user: models_users.CoreUser
room: models_facilities.Room


@pytest_asyncio.fixture(scope="module", autouse=True)
async def init_objects() -> None:
    global first_user, second_user
    first_user = await create_user_with_role(UserRole.user)
    second_user = await create_user_with_role(UserRole.user)

    manager = await create_user_with_role(UserRole.facility_manager)
    facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Tower B",
        location="Kumasi",
        description=None,
        manager_id=manager.id,
    )
    await add_object_to_db(facility)

    global room
    room = models_facilities.Room(
        id=uuid.uuid4(),
        facility_id=facility.id,
        name="Faraday",
        capacity=6,
        location=None,
        description=None,
        status=RoomStatus.available,
        hourly_rate=None,
        currency="GHS",
    )
    await add_object_to_db(room)


def new_booking(user_id: str, start: datetime, end: datetime) -> models_booking.Booking:
    now = datetime.now(UTC)
    return models_booking.Booking(
        id=uuid.uuid4(),
        room_id=room.id,
        user_id=user_id,
        title="Design review",
        description=None,
        start=start,
        end=end,
        status=BookingStatus.pending,
        rejection_reason=None,
        attendees=None,
        amount=None,
        currency=None,
        payment_status=PaymentStatus.not_required,
        payment_reference=None,
        checked_in_at=None,
        created_at=now,
        updated_at=now,
    )


async def reserve_and_commit(booking: models_booking.Booking) -> bool:
    """
    Reserve `booking` in a transaction of its own, as two concurrent requests would.
    Return False if the reservation was refused.
    """
    async with TestingSessionLocal() as db:
        try:
            await utils_booking.reserve_if_available(
                db=db,
                booking=booking,
                buffer=BUFFER,
                blocking_statuses=BLOCKING_STATUSES,
            )
        except BookingConflictError:
            await db.rollback()
            return False
        await db.commit()
        return True


async def count_room_bookings(start: datetime, end: datetime) -> int:
    async with TestingSessionLocal() as db:
        bookings = await cruds_booking.get_bookings_in_window(
            db=db,
            room_ids=[room.id],
            start=start,
            end=end,
            statuses=BLOCKING_STATUSES,
        )
    return len(bookings)


async def test_concurrent_reservations_of_the_same_window() -> None:
    start = (datetime.now(UTC) + timedelta(days=3)).replace(
        hour=10,
        minute=0,
        second=0,
        microsecond=0,
    )
    end = start + timedelta(hours=1)

    results = await asyncio.gather(
        reserve_and_commit(new_booking(first_user.id, start, end)),
        reserve_and_commit(new_booking(second_user.id, start, end)),
    )

    assert sorted(results) == [False, True]
    assert await count_room_bookings(start, end) == 1


async def test_concurrent_reservations_of_distant_windows() -> None:
    start = (datetime.now(UTC) + timedelta(days=4)).replace(
        hour=9,
        minute=0,
        second=0,
        microsecond=0,
    )

    results = await asyncio.gather(
        reserve_and_commit(
            new_booking(first_user.id, start, start + timedelta(hours=1)),
        ),
        reserve_and_commit(
            new_booking(
                second_user.id,
                start + timedelta(hours=3),
                start + timedelta(hours=4),
            ),
        ),
    )

    assert results == [True, True]
    assert await count_room_bookings(start, start + timedelta(hours=4)) == 2
