import uuid
from datetime import UTC, datetime, timedelta

import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.notification.notification_types import NotificationType
from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.modules.booking import models_booking
from app.modules.booking.types_booking import BookingStatus, PaymentStatus
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

room: models_facilities.Room
other_room: models_facilities.Room
booking: models_booking.Booking

projector_issue_id: str
heating_issue_id: str


def make_room(facility_id: uuid.UUID, name: str) -> models_facilities.Room:
    return models_facilities.Room(
        id=uuid.uuid4(),
        facility_id=facility_id,
        name=name,
        capacity=8,
        location=None,
        description=None,
        status=RoomStatus.available,
        hourly_rate=None,
        currency="GHS",
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

    facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Harbour House",
        location="Takoradi",
        description=None,
        manager_id=manager_user.id,
    )
    await add_object_to_db(facility)

    global room, other_room
    room = make_room(facility.id, "Lighthouse")
    await add_object_to_db(room)
    other_room = make_room(facility.id, "Dock")
    await add_object_to_db(other_room)

    global booking
    now = datetime.now(UTC)
    booking = models_booking.Booking(
        id=uuid.uuid4(),
        room_id=room.id,
        user_id=simple_user.id,
        title="Quarterly planning",
        description=None,
        start=now + timedelta(days=1),
        end=now + timedelta(days=1, hours=1),
        status=BookingStatus.confirmed,
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
    await add_object_to_db(booking)


def test_create_issue_with_empty_title(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/issues",
        json={"title": "   ", "description": "The screen flickers"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 422


def test_create_issue_in_unknown_room(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{uuid.uuid4()}/issues",
        json={"title": "Projector", "description": "The screen flickers"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 404


def test_create_issue_with_booking_of_another_room(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{other_room.id}/issues",
        json={
            "title": "Projector",
            "description": "The screen flickers",
            "booking_id": str(booking.id),
        },
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "The booking does not belong to this room"


def test_create_issue(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/issues",
        json={
            "title": " Projector ",
            "description": "The screen flickers during presentations ",
            "priority": "high",
            "booking_id": str(booking.id),
        },
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 201
    issue = response.json()
    assert issue["title"] == "Projector"
    assert issue["description"] == "The screen flickers during presentations"
    assert issue["status"] == "open"
    assert issue["priority"] == "high"
    assert issue["reported_by"]["id"] == simple_user.id
    assert issue["resolved_at"] is None

    global projector_issue_id
    projector_issue_id = issue["id"]


def test_create_issue_notifies_facility_manager(client: TestClient) -> None:
    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 200
    notifications = [
        notification
        for notification in response.json()
        if notification["type"] == NotificationType.room_maintenance.value
    ]
    assert len(notifications) == 1
    assert notifications[0]["title"] == "New high priority issue in Lighthouse"
    assert notifications[0]["message"] == "Projector"
    assert notifications[0]["related_id"] == str(room.id)


def test_create_second_issue(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/issues",
        json={"title": "Heating", "description": "The room is cold"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 201
    assert response.json()["priority"] == "medium"

    global heating_issue_id
    heating_issue_id = response.json()["id"]


def test_get_room_issues(client: TestClient) -> None:
    response = client.get(
        f"/rooms/{room.id}/issues",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert [issue["id"] for issue in response.json()] == [
        heating_issue_id,
        projector_issue_id,
    ]


def test_get_issues_of_unknown_room(client: TestClient) -> None:
    response = client.get(
        f"/rooms/{uuid.uuid4()}/issues",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 404


def test_get_room_issue(client: TestClient) -> None:
    response = client.get(
        f"/rooms/issues/{projector_issue_id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert response.json()["booking_id"] == str(booking.id)


def test_update_issue_as_simple_user(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/issues/{projector_issue_id}",
        json={"status": "resolved"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 403


def test_update_issue_as_manager_of_another_facility(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/issues/{projector_issue_id}",
        json={"status": "resolved"},
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 403


def test_resolve_issue(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/issues/{projector_issue_id}",
        json={"status": "resolved", "resolution_notes": "Replaced the HDMI cable"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/issues/{projector_issue_id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    issue = response.json()
    assert issue["status"] == "resolved"
    assert issue["resolution_notes"] == "Replaced the HDMI cable"
    assert issue["resolved_at"] is not None
    assert issue["resolved_by_user_id"] == manager_user.id


def test_filter_room_issues_by_status(client: TestClient) -> None:
    response = client.get(
        f"/rooms/{room.id}/issues",
        params={"status": "open"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert [issue["id"] for issue in response.json()] == [heating_issue_id]


def test_reopen_issue(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/issues/{projector_issue_id}",
        json={"status": "in_progress"},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/issues/{projector_issue_id}",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    issue = response.json()
    assert issue["status"] == "in_progress"
    assert issue["resolved_at"] is None
    assert issue["resolved_by_user_id"] is None
    assert issue["resolution_notes"] == "Replaced the HDMI cable"


def test_delete_booking_keeps_its_issues(client: TestClient) -> None:
    response = client.delete(
        f"/bookings/{booking.id}",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/issues/{projector_issue_id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert response.json()["booking_id"] is None
