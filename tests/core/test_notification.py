import uuid
from datetime import UTC, datetime, timedelta

import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.notification import models_notification
from app.core.notification.notification_types import NotificationType
from app.core.users import models_users
from app.core.users.types_users import UserRole
from tests.commons import (
    add_object_to_db,
    create_api_access_token,
    create_user_with_role,
)

admin_user: models_users.CoreUser
simple_user: models_users.CoreUser
other_user: models_users.CoreUser

token_admin: str
token_simple: str
token_other: str

old_notification: models_notification.Notification
read_notification: models_notification.Notification
recent_notification: models_notification.Notification


def make_notification(
    user_id: str,
    title: str,
    created_at: datetime,
    is_read: bool = False,
) -> models_notification.Notification:
    return models_notification.Notification(
        id=uuid.uuid4(),
        user_id=user_id,
        title=title,
        message=f"{title} message",
        type=NotificationType.system_notification,
        related_id=None,
        is_read=is_read,
        created_at=created_at,
    )


@pytest_asyncio.fixture(scope="module", autouse=True)
async def init_objects() -> None:
    global admin_user, token_admin
    admin_user = await create_user_with_role(UserRole.admin)
    token_admin = create_api_access_token(admin_user)

    global simple_user, token_simple
    simple_user = await create_user_with_role(UserRole.user)
    token_simple = create_api_access_token(simple_user)

    global other_user, token_other
    other_user = await create_user_with_role(UserRole.user)
    token_other = create_api_access_token(other_user)

    now = datetime.now(UTC)

    global old_notification, read_notification, recent_notification
    old_notification = make_notification(
        simple_user.id,
        "Welcome",
        now - timedelta(days=2),
    )
    await add_object_to_db(old_notification)
    read_notification = make_notification(
        simple_user.id,
        "Maintenance",
        now - timedelta(days=1),
        is_read=True,
    )
    await add_object_to_db(read_notification)
    recent_notification = make_notification(simple_user.id, "Update", now)
    await add_object_to_db(recent_notification)


def test_get_notifications(client: TestClient) -> None:
    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert [notification["title"] for notification in response.json()] == [
        "Update",
        "Maintenance",
        "Welcome",
    ]


def test_get_unread_notifications(client: TestClient) -> None:
    response = client.get(
        "/notifications",
        params={"unread": True},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert {notification["id"] for notification in response.json()} == {
        str(old_notification.id),
        str(recent_notification.id),
    }


def test_get_notifications_page(client: TestClient) -> None:
    response = client.get(
        "/notifications",
        params={"limit": 1, "offset": 1},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 200
    assert [notification["id"] for notification in response.json()] == [
        str(read_notification.id),
    ]


def test_get_notifications_of_another_user(client: TestClient) -> None:
    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token_other}"},
    )
    assert response.status_code == 200
    assert response.json() == []


def test_create_notification_as_simple_user(client: TestClient) -> None:
    response = client.post(
        "/notifications",
        json={"user_id": other_user.id, "title": "Hello", "message": "Hi"},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 403


def test_create_notification_for_unknown_user(client: TestClient) -> None:
    response = client.post(
        "/notifications",
        json={"user_id": str(uuid.uuid4()), "title": "Hello", "message": "Hi"},
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 404


def test_create_notification(client: TestClient) -> None:
    response = client.post(
        "/notifications",
        json={
            "user_id": other_user.id,
            "title": "Network maintenance",
            "message": "The wifi will be down on Saturday",
        },
        headers={"Authorization": f"Bearer {token_admin}"},
    )
    assert response.status_code == 201
    assert response.json()["type"] == NotificationType.system_notification.value
    assert response.json()["is_read"] is False

    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token_other}"},
    )
    assert [notification["title"] for notification in response.json()] == [
        "Network maintenance",
    ]


def test_mark_notification_of_another_user(client: TestClient) -> None:
    response = client.patch(
        f"/notifications/{recent_notification.id}",
        json={"is_read": True},
        headers={"Authorization": f"Bearer {token_other}"},
    )
    assert response.status_code == 404


def test_mark_notification_as_read(client: TestClient) -> None:
    response = client.patch(
        f"/notifications/{recent_notification.id}",
        json={"is_read": True},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 204

    response = client.get(
        "/notifications",
        params={"unread": True},
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert [notification["id"] for notification in response.json()] == [
        str(old_notification.id),
    ]


def test_delete_notification_of_another_user(client: TestClient) -> None:
    response = client.delete(
        f"/notifications/{old_notification.id}",
        headers={"Authorization": f"Bearer {token_other}"},
    )
    assert response.status_code == 404


def test_delete_notification(client: TestClient) -> None:
    response = client.delete(
        f"/notifications/{old_notification.id}",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert response.status_code == 204

    response = client.get(
        "/notifications",
        headers={"Authorization": f"Bearer {token_simple}"},
    )
    assert str(old_notification.id) not in [
        notification["id"] for notification in response.json()
    ]
