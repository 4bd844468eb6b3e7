from fastapi.testclient import TestClient

from app.core.users.types_users import UserRole


def test_make_admin_without_user(client: TestClient) -> None:
    response = client.post("/users/make-admin")
    assert response.status_code == 403


def test_make_admin(client: TestClient) -> None:
    response = client.post(
        "/users",
        json={
            "name": "First administrator",
            "email": "admin@conference-hub.example.com",
            "password": "a strong password",
        },
    )
    assert response.status_code == 201

    response = client.post("/users/make-admin")
    assert response.status_code == 200
    assert response.json()["success"]

    response = client.post(
        "/auth/simple_token",
        data={
            "username": "admin@conference-hub.example.com",
            "password": "a strong password",
        },
    )
    token = response.json()["access_token"]
    response = client.get(
        "/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.json()["role"] == UserRole.admin.value
