"""
Tests for time tracking endpoints (clock in/out, breaks, history)
"""
from datetime import datetime, timedelta, timezone

from fastapi import status

from app.models.audit_log import AuditLog
from app.models.time_entry import TimeEntry
from app.models.user import Role, User
from app.core.security import hash_password
from app.utils.datetime_utils import now_utc

# Matches the branch fixture in conftest.py
BRANCH_LAT = 53.4808
BRANCH_LNG = -2.2426

# ~30 m north of the branch (inside the 50 m radius) and ~220 m north (outside)
NEAR = {"lat": BRANCH_LAT + 0.00027, "lng": BRANCH_LNG, "accuracy": 8.0}
FAR = {"lat": BRANCH_LAT + 0.002, "lng": BRANCH_LNG, "accuracy": 8.0}


def _clock_in(client, headers, **body):
    return client.post("/api/v1/time-entries/clock-in", json=body, headers=headers)


def _clock_out(client, headers, **body):
    return client.post("/api/v1/time-entries/clock-out", json=body, headers=headers)


def test_current_when_clocked_out(client, assigned_staff, branch, staff_headers):
    response = client.get("/api/v1/time-entries/current", headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["state"] == "CLOCKED_OUT"
    assert data["branch_id"] == branch.id
    assert data["branch_location"]["allowed_radius_meters"] == 50
    assert data["entry"] is None
    assert data["working_time"] is None


def test_clock_in_within_radius(client, db, assigned_staff, branch, staff_headers):
    response = _clock_in(client, staff_headers, notes="Morning shift", **NEAR)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["state"] == "CLOCKED_IN"
    assert data["location_exception"] is False
    assert data["message"] == "Successfully clocked in"
    assert data["refresh_attempts"] == 1
    entry = data["entry"]
    assert entry["user_id"] == assigned_staff.id
    assert entry["branch_id"] == branch.id
    assert entry["clock_in_latitude"] == NEAR["lat"]
    assert entry["clock_in_longitude"] == NEAR["lng"]
    assert entry["clock_out_time"] is None
    assert entry["clock_in_time"].endswith("Z")
    assert data["location"]["distance"] == 30

    audit = db.query(AuditLog).filter(AuditLog.action == "TIME_ENTRY_CLOCK_IN").first()
    assert audit is not None
    assert audit.entity_id == entry["id"]

    current = client.get("/api/v1/time-entries/current", headers=staff_headers).json()
    assert current["state"] == "CLOCKED_IN"
    assert current["working_time"] == "0h 0m"


def test_clock_in_outside_radius_requires_confirmation(client, db, assigned_staff, staff_headers):
    response = _clock_in(client, staff_headers, **FAR)
    assert response.status_code == status.HTTP_409_CONFLICT
    detail = response.json()["detail"]
    assert detail["code"] == "CONFIRMATION_REQUIRED"
    assert detail["confirmation"] == "LOCATION_EXCEPTION"
    assert detail["distance"] > 50
    assert db.query(TimeEntry).count() == 0


def test_clock_in_outside_radius_confirmed(client, db, assigned_staff, staff_headers):
    response = _clock_in(client, staff_headers, confirm_location_exception=True, **FAR)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["location_exception"] is True
    assert data["entry"]["location_exception"] is True
    assert data["entry"]["clock_in_latitude"] == FAR["lat"]
    assert data["entry"]["clock_in_distance_meters"] > 50

    audit = db.query(AuditLog).filter(AuditLog.action == "TIME_ENTRY_LOCATION_EXCEPTION").first()
    assert audit is not None
    assert audit.meta_json["distance_meters"] == data["entry"]["clock_in_distance_meters"]


def test_clock_in_twice_rejected(client, db, assigned_staff, staff_headers):
    assert _clock_in(client, staff_headers, **NEAR).status_code == status.HTTP_201_CREATED
    response = _clock_in(client, staff_headers, **NEAR)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "MUTATION_FAILED"
    assert db.query(TimeEntry).count() == 1


def test_clock_in_without_branch_assignment(client, staff_user, staff_headers):
    response = _clock_in(client, staff_headers, **NEAR)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    detail = response.json()["detail"]
    assert detail["code"] == "NO_BRANCH_ASSIGNED"
    assert detail["message"] == "No branch assigned. Please contact your administrator."


def test_clock_in_permission_denied(client, assigned_staff, staff_headers):
    response = _clock_in(client, staff_headers, location_error="PERMISSION_DENIED", permission_state="denied")
    assert response.status_code == status.HTTP_403_FORBIDDEN
    detail = response.json()["detail"]
    assert detail["code"] == "PERMISSION_DENIED"
    assert detail["needs_permission"] is True


def test_clock_in_timeout(client, assigned_staff, staff_headers):
    response = _clock_in(client, staff_headers, location_error="TIMEOUT")
    assert response.status_code == status.HTTP_408_REQUEST_TIMEOUT
    assert response.json()["detail"]["needs_permission"] is False


def test_clock_in_stale_fix_is_unavailable(client, assigned_staff, staff_headers):
    captured_at = (now_utc() - timedelta(minutes=30)).isoformat()
    response = _clock_in(client, staff_headers, captured_at=captured_at, **NEAR)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"]["code"] == "POSITION_UNAVAILABLE"


def test_clock_in_future_fix_is_unavailable(client, db, assigned_staff, staff_headers):
    captured_at = (now_utc() + timedelta(hours=2)).isoformat()
    response = _clock_in(client, staff_headers, captured_at=captured_at, **NEAR)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"]["code"] == "POSITION_UNAVAILABLE"
    assert db.query(TimeEntry).count() == 0


def test_clock_out_with_location(client, db, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    response = _clock_out(client, staff_headers, notes="Closing", **NEAR)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["state"] == "CLOCKED_OUT"
    entry = data["entry"]
    assert entry["clock_out_time"] is not None
    assert entry["clock_out_latitude"] == NEAR["lat"]
    assert entry["clock_out_location_verified"] is True
    assert entry["total_hours"] == 0.0
    assert data["message"].startswith("Successfully clocked out")

    current = client.get("/api/v1/time-entries/current", headers=staff_headers).json()
    assert current["state"] == "CLOCKED_OUT"


def test_clock_out_without_location_requires_confirmation(client, db, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    response = _clock_out(client, staff_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    detail = response.json()["detail"]
    assert detail["confirmation"] == "CLOCK_OUT_WITHOUT_LOCATION"
    assert detail["location_error"]["code"] == "POSITION_UNAVAILABLE"
    assert db.query(TimeEntry).filter(TimeEntry.clock_out_time.is_(None)).count() == 1


def test_clock_out_without_location_confirmed_stores_zeros(client, db, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    response = _clock_out(client, staff_headers, proceed_without_location=True)
    assert response.status_code == status.HTTP_200_OK
    entry = response.json()["entry"]
    assert entry["clock_out_latitude"] == 0.0
    assert entry["clock_out_longitude"] == 0.0
    assert entry["clock_out_location_verified"] is False


def test_clock_out_when_not_clocked_in(client, assigned_staff, staff_headers):
    response = _clock_out(client, staff_headers, **NEAR)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "MUTATION_FAILED"


def test_breaks_are_unavailable(client, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    response = client.post("/api/v1/time-entries/breaks/start", json={"notes": "Lunch"}, headers=staff_headers)
    assert response.status_code == status.HTTP_501_NOT_IMPLEMENTED
    assert response.json()["detail"]["code"] == "FEATURE_UNAVAILABLE"

    current = client.get("/api/v1/time-entries/current", headers=staff_headers).json()
    assert current["state"] == "CLOCKED_IN"
    assert current["active_break"] is None


def test_end_break_when_not_on_break(client, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    response = client.post("/api/v1/time-entries/breaks/end", headers=staff_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_my_entries(client, assigned_staff, staff_headers):
    _clock_in(client, staff_headers, **NEAR)
    _clock_out(client, staff_headers, **NEAR)
    _clock_in(client, staff_headers, **NEAR)

    response = client.get("/api/v1/time-entries/my", headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert data["items"][0]["clock_out_time"] is None


def test_my_entries_rejects_inverted_range(client, assigned_staff, staff_headers):
    response = client.get(
        "/api/v1/time-entries/my",
        params={"from": "2026-03-10", "to": "2026-03-01"},
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_requires_authentication(client):
    response = client.get("/api/v1/time-entries/current")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


# --- location check ---


def test_location_check_within_radius(client, assigned_staff, branch, staff_headers):
    response = client.post("/api/v1/location/check", json=NEAR, headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["branch_id"] == branch.id
    assert data["is_within_radius"] is True
    assert data["allowed_radius_meters"] == 50
    assert data["accuracy_label"] == "High accuracy (±8m)"
    assert data["message"].startswith("OK: You are at your workplace")


def test_location_check_outside_radius(client, assigned_staff, staff_headers):
    response = client.post("/api/v1/location/check", json=FAR, headers=staff_headers)
    data = response.json()
    assert data["is_within_radius"] is False
    assert data["message"].startswith("Error: You are")


def test_location_check_without_workplace(client, db, assigned_staff, branch, staff_headers):
    db.delete(branch.location)
    db.commit()
    response = client.post("/api/v1/location/check", json=NEAR, headers=staff_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "NO_WORKPLACE_CONFIGURED"


# --- branch time entries ---


def _entry(db, user, branch, clock_in_time, *, closed=True, location_exception=False):
    entry = TimeEntry(
        user_id=user.id,
        branch_id=branch.id,
        clock_in_time=clock_in_time,
        clock_out_time=clock_in_time + timedelta(hours=8) if closed else None,
        clock_in_latitude=BRANCH_LAT,
        clock_in_longitude=BRANCH_LNG,
        clock_in_distance_meters=220 if location_exception else 10,
        location_exception=location_exception,
        total_hours=8.0 if closed else None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def _manager_headers(client, db):
    db.add(User(
        email="manager@test.local",
        first_name="Mia",
        last_name="Manager",
        role=Role.MANAGER.value,
        password_hash=hash_password("testpass123"),
        active=True,
    ))
    db.commit()
    token = client.post(
        "/api/v1/auth/login", json={"email": "manager@test.local", "password": "testpass123"}
    ).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_branch_entries_for_manager(client, db, assigned_staff, branch):
    _entry(db, assigned_staff, branch, datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
    _entry(db, assigned_staff, branch, datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc))
    headers = _manager_headers(client, db)

    response = client.get(f"/api/v1/branches/{branch.id}/time-entries", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["branch_id"] == branch.id
    assert data["total"] == 2
    assert data["items"][0]["clock_in_time"] == "2026-03-03T09:00:00Z"
    assert data["clocked_in"] == []
    assert data["clocked_in_count"] == 0


def test_branch_entries_filter_by_local_day(client, db, assigned_staff, branch, admin_headers):
    # 23:30 UTC on 1 July is 00:30 on 2 July in London (BST)
    _entry(db, assigned_staff, branch, datetime(2026, 7, 1, 23, 30, tzinfo=timezone.utc))
    _entry(db, assigned_staff, branch, datetime(2026, 7, 1, 8, 0, tzinfo=timezone.utc))

    response = client.get(
        f"/api/v1/branches/{branch.id}/time-entries", params={"date": "2026-07-02"}, headers=admin_headers
    )
    data = response.json()
    assert data["day"] == "2026-07-02"
    assert data["total"] == 1
    assert data["items"][0]["clock_in_time"] == "2026-07-01T23:30:00Z"


def test_branch_entries_location_exception_filter(client, db, assigned_staff, branch, admin_headers):
    _entry(db, assigned_staff, branch, datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc), location_exception=True)
    _entry(db, assigned_staff, branch, datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc))

    response = client.get(
        f"/api/v1/branches/{branch.id}/time-entries",
        params={"location_exception": "true"},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["location_exception"] is True
    assert data["items"][0]["clock_in_distance_meters"] == 220
    assert data["location_exception_count"] == 1


def test_branch_entries_clocked_in_summary(client, db, assigned_staff, branch, staff_headers, admin_headers):
    _clock_in(client, staff_headers, confirm_location_exception=True, **FAR)

    response = client.get(f"/api/v1/branches/{branch.id}/time-entries", headers=admin_headers)
    data = response.json()
    assert data["clocked_in_count"] == 1
    summary = data["clocked_in"][0]
    assert summary["user_id"] == assigned_staff.id
    assert summary["user_name"] == "Sam Staff"
    assert summary["location_exception"] is True
    assert summary["working_time"] == "0h 0m"
    assert summary["entry_id"] == data["items"][0]["id"]


def test_branch_entries_forbidden_for_staff(client, assigned_staff, branch, staff_headers):
    response = client.get(f"/api/v1/branches/{branch.id}/time-entries", headers=staff_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_branch_entries_unknown_branch(client, admin_user, admin_headers):
    response = client.get("/api/v1/branches/9999/time-entries", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
