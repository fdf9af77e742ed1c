"""
Tests for administrator user management
"""
from fastapi import status
from app.models.audit_log import AuditLog


def _new_user(**overrides):
    body = {
        "email": "New.Pharmacist@Test.Local",
        "first_name": "Nia",
        "last_name": "Patel",
        "position": "Pharmacist",
        "role": "pharmacist",
        "password": "Welcome123",
    }
    body.update(overrides)
    return body


def test_create_user(client, db, admin_headers):
    response = client.post("/api/v1/admin/users", json=_new_user(), headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["email"] == "new.pharmacist@test.local"
    assert data["role"] == "pharmacist"
    assert data["active"] is True
    assert db.query(AuditLog).filter(AuditLog.entity_type == "user", AuditLog.action == "CREATE").count() == 1

    login = client.post("/api/v1/auth/login", json={"email": data["email"], "password": "Welcome123"})
    assert login.status_code == status.HTTP_200_OK


def test_create_user_duplicate_email(client, admin_headers, staff_user):
    response = client.post("/api/v1/admin/users", json=_new_user(email="staff@test.local"), headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_create_user_short_password(client, admin_headers):
    response = client.post("/api/v1/admin/users", json=_new_user(password="short"), headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_staff_cannot_manage_users(client, staff_headers):
    response = client.get("/api/v1/admin/users", headers=staff_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_users_newest_first(client, admin_headers, staff_user):
    client.post("/api/v1/admin/users", json=_new_user(), headers=admin_headers)
    response = client.get("/api/v1/admin/users", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    emails = [u["email"] for u in response.json()]
    assert emails[0] == "new.pharmacist@test.local"
    assert "staff@test.local" in emails


def test_update_user(client, admin_headers, staff_user):
    response = client.patch(
        f"/api/v1/admin/users/{staff_user.id}",
        json={"position": "Senior Dispenser", "role": "manager"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["position"] == "Senior Dispenser"
    assert data["role"] == "manager"


def test_deactivate_user(client, admin_headers, staff_user):
    response = client.delete(f"/api/v1/admin/users/{staff_user.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["active"] is False

    login = client.post("/api/v1/auth/login", json={"email": "staff@test.local", "password": "testpass123"})
    assert login.status_code == status.HTTP_403_FORBIDDEN


def test_admin_cannot_deactivate_self(client, admin_headers, admin_user):
    response = client.delete(f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_get_missing_user(client, admin_headers):
    response = client.get("/api/v1/admin/users/9999", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
