"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; give the app a throwaway database and secret
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-hope-pharmacy-ims")

import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.core.security import hash_password

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    AuditLog,
    Branch,
    BranchLocation,
    BranchStaffAssignment,
    Role,
    TimeEntry,
    User,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Branch workplace used across the API tests (Manchester city centre)
BRANCH_LAT = 53.4808
BRANCH_LNG = -2.2426


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email, role, password="testpass123", first_name="Test", last_name="User"):
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        password_hash=hash_password(password),
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _make_user(db, "admin@test.local", Role.ADMINISTRATOR, first_name="Ada", last_name="Admin")


@pytest.fixture
def staff_user(db):
    return _make_user(db, "staff@test.local", Role.STAFF, first_name="Sam", last_name="Staff")


@pytest.fixture
def branch(db, admin_user):
    """Active branch with a 50 m workplace radius"""
    branch = Branch(
        branch_name="Hope Pharmacy Piccadilly",
        branch_code="MAN01",
        address="1 Piccadilly",
        city="Manchester",
        postcode="M1 1AA",
        is_active=True,
        created_by=admin_user.id,
    )
    db.add(branch)
    db.commit()
    db.refresh(branch)
    db.add(BranchLocation(branch_id=branch.id, latitude=BRANCH_LAT, longitude=BRANCH_LNG, radius_meters=50))
    db.commit()
    return branch


@pytest.fixture
def assigned_staff(db, staff_user, branch):
    """Staff user actively assigned to the test branch"""
    db.add(BranchStaffAssignment(
        branch_id=branch.id,
        user_id=staff_user.id,
        position="Dispenser",
        assignment_date=date.today(),
        is_active=True,
    ))
    db.commit()
    return staff_user


def get_auth_token(client, email, password="testpass123"):
    """Helper to get auth token"""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password}
    )
    return response.json()["access_token"]


def auth_headers(client, email, password="testpass123"):
    return {"Authorization": f"Bearer {get_auth_token(client, email, password)}"}


@pytest.fixture
def admin_headers(client, admin_user):
    return auth_headers(client, admin_user.email)


@pytest.fixture
def staff_headers(client, staff_user):
    return auth_headers(client, staff_user.email)
