import uuid
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.notification.notification_types import NotificationType
from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.modules.booking import models_booking
from app.modules.booking.types_booking import BookingStatus, PaymentStatus
from app.modules.booking.utils_booking import count_bookings_per_day
from app.modules.facilities import models_facilities
from app.modules.facilities.types_facilities import RoomStatus
from tests.commons import (
    add_object_to_db,
    create_api_access_token,
    create_user_with_role,
)

admin_user: models_users.CoreUser
manager_user: models_users.CoreUser
other_manager_user: models_users.CoreUser
simple_user: models_users.CoreUser

token_admin: str
token_manager: str
token_other_manager: str
token_simple: str

facility: models_facilities.Facility
empty_facility: models_facilities.Facility
room: models_facilities.Room

soon_booking: models_booking.Booking

approved_booking_id: str
declined_booking_id: str


def tomorrow_at(hour: int) -> datetime:
    return (datetime.now(UTC) + timedelta(days=1)).replace(
        hour=hour,
        minute=0,
        second=0,
        microsecond=0,
    )


def make_booking(
    start: datetime,
    created_at: datetime,
) -> models_booking.Booking:
    return models_booking.Booking(
        id=uuid.uuid4(),
        room_id=room.id,
        user_id=simple_user.id,
        title="Client call",
        description=None,
        start=start,
        end=start + timedelta(hours=1),
        status=BookingStatus.confirmed,
        rejection_reason=None,
        attendees=None,
        amount=None,
        currency=None,
        payment_status=PaymentStatus.not_required,
        payment_reference=None,
        checked_in_at=None,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest_asyncio.fixture(scope="module", autouse=True)
async def init_objects() -> None:
    global admin_user, token_admin
    admin_user = await create_user_with_role(UserRole.admin)
    token_admin = create_api_access_token(admin_user)

    global manager_user, token_manager
    manager_user = await create_user_with_role(UserRole.facility_manager)
    token_manager = create_api_access_token(manager_user)

    global other_manager_user, token_other_manager
    other_manager_user = await create_user_with_role(UserRole.facility_manager)
    token_other_manager = create_api_access_token(other_manager_user)

    global simple_user, token_simple
    simple_user = await create_user_with_role(UserRole.user)
    token_simple = create_api_access_token(simple_user)

    global facility, empty_facility
    facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Airport City",
        location="Accra",
        description=None,
        manager_id=manager_user.id,
    )
    await add_object_to_db(facility)
    empty_facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Annex",
        location="Accra",
        description=None,
        manager_id=manager_user.id,
    )
    await add_object_to_db(empty_facility)

    global room
    room = models_facilities.Room(
        id=uuid.uuid4(),
        facility_id=facility.id,
        name="Kilimanjaro",
        capacity=12,
        location=None,
        description=None,
        status=RoomStatus.available,
        hourly_rate=None,
        currency="GHS",
    )
    await add_object_to_db(room)

    now = datetime.now(UTC)

    global soon_booking
    soon_booking = make_booking(start=now + timedelta(minutes=5), created_at=now)
    await add_object_to_db(soon_booking)
    await add_object_to_db(
        make_booking(start=now + timedelta(hours=3), created_at=now),
    )
    await add_object_to_db(
        make_booking(
            start=now - timedelta(days=3),
            created_at=now - timedelta(days=3, hours=1),
        ),
    )


def get_notifications(
    client: TestClient,
    token: str,
    notification_type: NotificationType,
) -> list[dict]:
    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 200
    return [
        notification
        for notification in response.json()
        if notification["type"] == notification_type.value
    ]


def test_count_bookings_per_day() -> None:
    tz = ZoneInfo("Africa/Accra")
    counts = count_bookings_per_day(
        created_at=[
            datetime(2031, 5, 9, 23, 30, tzinfo=UTC),
            datetime(2031, 5, 10, 8, tzinfo=UTC),
            datetime(2031, 5, 10, 17, tzinfo=UTC),
            datetime(2031, 5, 1, 8, tzinfo=UTC),
        ],
        last_day=date(2031, 5, 10),
        days=3,
        tz=tz,
    )
    assert [(count.date, count.bookings) for count in counts] == [
        (date(2031, 5, 8), 0),
        (date(2031, 5, 9), 1),
        (date(2031, 5, 10), 2),
    ]


def test_get_booking_trends(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{facility.id}/booking-trends",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 200
    trends = response.json()
    assert len(trends) == 30
    assert trends[-1]["date"] == datetime.now(UTC).date().isoformat()
    assert trends[-1]["bookings"] == 2
    assert sum(day["bookings"] for day in trends) == 3


def test_get_booking_trends_of_a_few_days(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{facility.id}/booking-trends",
        params={"days": 2},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 200
    assert [day["bookings"] for day in response.json()][-1] == 2
    assert len(response.json()) == 2


def test_get_booking_trends_of_facility_without_rooms(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{empty_facility.id}/booking-trends",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 200
    assert response.json() == []


def test_get_booking_trends_as_manager_of_another_facility(
    client: TestClient,
) -> None:
    response = client.get(
        f"/facilities/{facility.id}/booking-trends",
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 403


def test_get_booking_trends_of_unknown_facility(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{uuid.uuid4()}/booking-trends",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 404


def test_send_reminders_as_simple_user(client: TestClient) -> None:
    response = client.post(
        "/bookings/send-reminders",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 403


def test_send_reminders(client: TestClient) -> None:
    response = client.post(
        "/bookings/send-reminders",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 200
    assert response.json() == {
        "total": 1,
        "already_notified": 0,
        "reminders_sent": 1,
        "booking_ids": [str(soon_booking.id)],
    }

    reminders = get_notifications(
        client,
        token_simple,
        NotificationType.booking_reminder,
    )
    assert len(reminders) == 1
    assert reminders[0]["title"] == "Upcoming Meeting Reminder"
    assert reminders[0]["related_id"] == str(soon_booking.id)
    assert "Kilimanjaro" in reminders[0]["message"]


def test_send_reminders_twice(client: TestClient) -> None:
    response = client.post(
        "/bookings/send-reminders",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 200
    assert response.json() == {
        "total": 1,
        "already_notified": 1,
        "reminders_sent": 0,
        "booking_ids": [],
    }
    assert (
        len(get_notifications(client, token_simple, NotificationType.booking_reminder))
        == 1
    )


def test_create_booking_notifies_manager(client: TestClient) -> None:
    global approved_booking_id, declined_booking_id
    booking_ids = []
    for start_hour in (9, 15):
        response = client.post(
            "/bookings",
            json={
                "room_id": str(room.id),
                "title": "Sales review",
                "start": tomorrow_at(start_hour).isoformat(),
                "end": tomorrow_at(start_hour + 1).isoformat(),
            },
            headers={"Authorization": f"Bearer {token_simple}"},
        )
        assert response.status_code == 201
        booking_ids.append(response.json()["id"])
    approved_booking_id, declined_booking_id = booking_ids

    requests = get_notifications(
        client,
        token_manager,
        NotificationType.booking_request,
    )
    assert {notification["related_id"] for notification in requests} == set(
        booking_ids,
    )
    assert requests[0]["title"] == "New Booking Request"
    assert "Sales review" in requests[0]["message"]


def test_approve_booking_notifies_requester(client: TestClient) -> None:
    response = client.patch(
        f"/bookings/{approved_booking_id}/status",
        json={"decision": "approved"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    confirmations = get_notifications(
        client,
        token_simple,
        NotificationType.booking_confirmation,
    )
    assert len(confirmations) == 1
    assert confirmations[0]["title"] == "Booking Confirmed"
    assert confirmations[0]["related_id"] == approved_booking_id
    assert confirmations[0]["is_read"] is False


def test_decline_booking_notifies_requester(client: TestClient) -> None:
    response = client.patch(
        f"/bookings/{declined_booking_id}/status",
        json={"decision": "declined", "rejection_reason": "Room is being painted"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    rejections = get_notifications(
        client,
        token_simple,
        NotificationType.booking_rejection,
    )
    assert len(rejections) == 1
    assert rejections[0]["title"] == "Booking Declined"
    assert rejections[0]["related_id"] == declined_booking_id
    assert rejections[0]["message"].endswith("Reason: Room is being painted")
