import uuid

import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.users import models_users
from app.core.users.types_users import UserRole
from app.modules.facilities import models_facilities
from app.modules.facilities.types_facilities import ResourceStatus, RoomStatus
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
resource: models_facilities.Resource
shared_resource: models_facilities.Resource

new_facility_id: str
new_room_id: str
blackout_id: str


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

    global facility
    facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Kumasi Hub",
        location="Kumasi",
        description="Main conference center",
        manager_id=manager_user.id,
    )
    await add_object_to_db(facility)

    global empty_facility
    empty_facility = models_facilities.Facility(
        id=uuid.uuid4(),
        name="Annex",
        location=None,
        description=None,
        manager_id=None,
    )
    await add_object_to_db(empty_facility)

    global room
    room = models_facilities.Room(
        id=uuid.uuid4(),
        facility_id=facility.id,
        name="Ashanti",
        capacity=30,
        location="First floor",
        description=None,
        status=RoomStatus.available,
        hourly_rate=None,
        currency="GHS",
    )
    await add_object_to_db(room)

    global resource
    resource = models_facilities.Resource(
        id=uuid.uuid4(),
        name="Projector",
        type="av",
        status=ResourceStatus.available,
        description=None,
        facility_id=facility.id,
    )
    await add_object_to_db(resource)

    global shared_resource
    shared_resource = models_facilities.Resource(
        id=uuid.uuid4(),
        name="Video conference kit",
        type="av",
        status=ResourceStatus.available,
        description=None,
        facility_id=None,
    )
    await add_object_to_db(shared_resource)


##############
# Facilities #
##############


def test_get_facilities(client: TestClient) -> None:
    response = client.get(
        "/facilities",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert str(facility.id) in [item["id"] for item in response.json()]


def test_get_facility(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{facility.id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert response.json()["manager"]["id"] == manager_user.id


def test_get_unknown_facility(client: TestClient) -> None:
    response = client.get(
        f"/facilities/{uuid.uuid4()}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 404


def test_create_facility_as_manager(client: TestClient) -> None:
    response = client.post(
        "/facilities",
        json={"name": "Takoradi Hub"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 403


def test_create_facility(client: TestClient) -> None:
    response = client.post(
        "/facilities",
        json={"name": "Tamale Hub ", "location": "Tamale"},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 201
    assert response.json()["name"] == "Tamale Hub"
    assert response.json()["manager_id"] is None

    global new_facility_id
    new_facility_id = response.json()["id"]


def test_assign_simple_user_as_manager(client: TestClient) -> None:
    response = client.patch(
        f"/facilities/{new_facility_id}/manager",
        json={"manager_id": simple_user.id},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "The user must be a facility manager"


def test_assign_unknown_user_as_manager(client: TestClient) -> None:
    response = client.patch(
        f"/facilities/{new_facility_id}/manager",
        json={"manager_id": str(uuid.uuid4())},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 404


def test_assign_manager(client: TestClient) -> None:
    response = client.patch(
        f"/facilities/{new_facility_id}/manager",
        json={"manager_id": other_manager_user.id},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 204

    response = client.get(
        "/facilities/users/me/manage",
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [new_facility_id]


def test_get_managed_facilities_as_simple_user(client: TestClient) -> None:
    response = client.get(
        "/facilities/users/me/manage",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 403


def test_update_facility_as_other_manager(client: TestClient) -> None:
    response = client.patch(
        f"/facilities/{facility.id}",
        json={"description": "Renovated"},
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 403


def test_update_facility(client: TestClient) -> None:
    response = client.patch(
        f"/facilities/{facility.id}",
        json={"description": "Renovated"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/facilities/{facility.id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.json()["description"] == "Renovated"


def test_delete_facility_with_rooms(client: TestClient) -> None:
    response = client.delete(
        f"/facilities/{facility.id}",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "There are still rooms in this facility"


def test_delete_facility(client: TestClient) -> None:
    response = client.delete(
        f"/facilities/{empty_facility.id}",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 204


#########
# Rooms #
#########


def test_create_room_as_other_manager(client: TestClient) -> None:
    response = client.post(
        "/rooms",
        json={"facility_id": str(facility.id), "name": "Volta", "capacity": 8},
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 403


def test_create_room_with_invalid_capacity(client: TestClient) -> None:
    response = client.post(
        "/rooms",
        json={"facility_id": str(facility.id), "name": "Volta", "capacity": 0},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_create_room_with_invalid_currency(client: TestClient) -> None:
    response = client.post(
        "/rooms",
        json={
            "facility_id": str(facility.id),
            "name": "Volta",
            "capacity": 8,
            "currency": "cedi",
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_create_room(client: TestClient) -> None:
    response = client.post(
        "/rooms",
        json={
            "facility_id": str(facility.id),
            "name": "Volta",
            "capacity": 8,
            "hourly_rate": 2500,
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 201
    json = response.json()
    assert json["currency"] == "GHS"
    assert json["status"] == RoomStatus.available.value

    global new_room_id
    new_room_id = json["id"]


def test_get_rooms_of_facility(client: TestClient) -> None:
    response = client.get(
        "/rooms",
        params={"facility_id": str(facility.id)},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert {item["id"] for item in response.json()} == {str(room.id), new_room_id}


def test_update_room(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/{new_room_id}",
        json={"capacity": 12, "status": RoomStatus.maintenance.value},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/{new_room_id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    json = response.json()
    assert json["capacity"] == 12
    assert json["status"] == RoomStatus.maintenance.value
    assert json["facility"]["id"] == str(facility.id)


def test_delete_room(client: TestClient) -> None:
    response = client.delete(
        f"/rooms/{new_room_id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/{new_room_id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 404


#############
# Resources #
#############


def test_create_shared_resource_as_manager(client: TestClient) -> None:
    response = client.post(
        "/resources",
        json={"name": "Speakers", "type": "av", "status": "available"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 403


def test_create_resource(client: TestClient) -> None:
    response = client.post(
        "/resources",
        json={
            "name": "Whiteboard",
            "type": "furniture",
            "status": "available",
            "facility_id": str(facility.id),
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 201
    assert response.json()["facility_id"] == str(facility.id)


def test_get_resources_of_facility(client: TestClient) -> None:
    response = client.get(
        "/resources",
        params={"facility_id": str(facility.id)},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    names = {item["name"] for item in response.json()}
    assert "Projector" in names
    assert "Whiteboard" in names
    assert "Video conference kit" not in names


def test_update_shared_resource_as_manager(client: TestClient) -> None:
    response = client.patch(
        f"/resources/{shared_resource.id}",
        json={"status": "maintenance"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 403


def test_update_resource(client: TestClient) -> None:
    response = client.patch(
        f"/resources/{resource.id}",
        json={"status": "in_use"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/resources/{resource.id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.json()["status"] == ResourceStatus.in_use.value


def test_assign_resource_to_room(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/resources",
        json={"resource_id": str(resource.id), "quantity": 2},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    # Assigning the resource again replaces its quantity
    response = client.post(
        f"/rooms/{room.id}/resources",
        json={"resource_id": str(resource.id), "quantity": 3},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/{room.id}/resources",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["quantity"] == 3
    assert response.json()[0]["resource"]["id"] == str(resource.id)


def test_assign_unknown_resource_to_room(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/resources",
        json={"resource_id": str(uuid.uuid4())},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 404


def test_remove_resource_from_room(client: TestClient) -> None:
    response = client.delete(
        f"/rooms/{room.id}/resources/{resource.id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.delete(
        f"/rooms/{room.id}/resources/{resource.id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 404


def test_delete_shared_resource(client: TestClient) -> None:
    response = client.delete(
        f"/resources/{shared_resource.id}",
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 204


#####################
# Room availability #
#####################


def test_get_default_availability(client: TestClient) -> None:
    response = client.get(
        f"/rooms/{room.id}/availability",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    json = response.json()
    assert not json["is_configured"]
    assert json["buffer_minutes"] == 30
    assert len(json["operating_hours"]) == 7
    assert json["operating_hours"][0]["opening"] == "08:00:00"


def test_set_availability_as_simple_user(client: TestClient) -> None:
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={"operating_hours": []},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 403


def test_set_availability_with_min_above_max(client: TestClient) -> None:
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={"min_duration_minutes": 120, "max_duration_minutes": 60},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_set_availability_with_duplicated_weekday(client: TestClient) -> None:
    hours = {"weekday": 0, "opening": "09:00:00", "closing": "17:00:00"}
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={"operating_hours": [hours, hours]},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_set_availability_with_reversed_hours(client: TestClient) -> None:
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={
            "operating_hours": [
                {"weekday": 0, "opening": "17:00:00", "closing": "09:00:00"},
            ],
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_set_availability(client: TestClient) -> None:
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={
            "min_duration_minutes": 60,
            "max_duration_minutes": 120,
            "buffer_minutes": 15,
            "max_bookings_per_user_per_week": 2,
            "operating_hours": [
                {"weekday": weekday, "opening": "09:00:00", "closing": "17:00:00"}
                for weekday in range(5)
            ],
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 200
    assert response.json()["is_configured"]

    response = client.get(
        f"/rooms/{room.id}/availability",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    json = response.json()
    assert json["is_configured"]
    assert json["buffer_minutes"] == 15
    assert json["max_bookings_per_user_per_week"] == 2
    assert len(json["operating_hours"]) == 5


def test_replace_availability(client: TestClient) -> None:
    response = client.put(
        f"/rooms/{room.id}/availability",
        json={
            "operating_hours": [
                {"weekday": 0, "opening": "10:00:00", "closing": "12:00:00"},
            ],
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 200

    response = client.get(
        f"/rooms/{room.id}/availability",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    json = response.json()
    assert json["buffer_minutes"] == 30
    assert json["max_bookings_per_user_per_week"] is None
    assert [hours["weekday"] for hours in json["operating_hours"]] == [0]


def test_get_slots_of_closed_day(client: TestClient) -> None:
    # 2031-03-11 is a Tuesday, the room only opens on Mondays
    response = client.get(
        f"/rooms/{room.id}/availability/slots",
        params={"date": "2031-03-11"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    json = response.json()
    assert json["unavailable_reason"] == "Room is closed on Tuesday"
    assert json["slots"] == []
    assert json["start_options"] == []


#############
# Blackouts #
#############


def test_create_blackout_with_reversed_interval(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/blackouts",
        json={
            "title": "Painting",
            "start": "2031-03-10T12:00:00Z",
            "end": "2031-03-10T10:00:00Z",
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 422


def test_create_blackout(client: TestClient) -> None:
    response = client.post(
        f"/rooms/{room.id}/blackouts",
        json={
            "title": "Painting",
            "start": "2031-03-10T10:00:00Z",
            "end": "2031-03-10T12:00:00Z",
            "blackout_type": "maintenance",
        },
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 201
    json = response.json()
    assert json["created_by"] == manager_user.id
    assert json["is_active"]

    global blackout_id
    blackout_id = json["id"]


def test_get_blackouts(client: TestClient) -> None:
    response = client.get(
        f"/rooms/{room.id}/blackouts",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [blackout_id]


def test_update_blackout_with_reversed_interval(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/blackouts/{blackout_id}",
        json={"end": "2031-03-10T09:00:00Z"},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 400


def test_update_blackout_as_other_manager(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/blackouts/{blackout_id}",
        json={"is_active": False},
        headers={"Authorization": f"Bearer {token_other_manager}"},
    )
    assert response.status_code == 403


def test_update_blackout(client: TestClient) -> None:
    response = client.patch(
        f"/rooms/blackouts/{blackout_id}",
        json={"is_active": False},
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/{room.id}/blackouts",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert not response.json()[0]["is_active"]


def test_delete_blackout(client: TestClient) -> None:
    response = client.delete(
        f"/rooms/blackouts/{blackout_id}",
        headers={"Authorization": f"Bearer {token_manager}"},
    )
    assert response.status_code == 204

    response = client.get(
        f"/rooms/{room.id}/blackouts",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.json() == []
