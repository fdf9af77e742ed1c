"""
Tests for authentication endpoints
"""
import pytest
from fastapi import status
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.models.user import User, Role
from app.core.security import hash_password, decode_token


@pytest.fixture
def inactive_user(db: Session):
    """Create an inactive user"""
    user = User(
        email="former@test.local",
        first_name="Former",
        last_name="Staff",
        role=Role.STAFF.value,
        password_hash=hash_password("testpass123"),
        active=False
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_login_success(client, db, staff_user):
    """Test successful login returns a bearer token for the user"""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "staff@test.local", "password": "testpass123"}
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"

    payload = decode_token(data["access_token"])
    assert payload["sub"] == str(staff_user.id)
    assert payload["role"] == "staff"

    db.refresh(staff_user)
    assert staff_user.last_login_at is not None
    assert db.query(AuditLog).filter(AuditLog.action == "AUTH_LOGIN_SUCCESS").count() == 1


def test_login_email_is_case_insensitive(client, staff_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "  Staff@Test.Local ", "password": "testpass123"}
    )
    assert response.status_code == status.HTTP_200_OK


def test_login_wrong_password(client, staff_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "staff@test.local", "password": "wrongpass"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid email or password"


def test_login_unknown_email(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@test.local", "password": "testpass123"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_inactive_user(client, inactive_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "former@test.local", "password": "testpass123"}
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_me(client, staff_user, staff_headers):
    response = client.get("/api/v1/auth/me", headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == staff_user.id
    assert data["email"] == "staff@test.local"
    assert data["role"] == "staff"
    assert "password_hash" not in data


def test_me_rejects_bad_token(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
