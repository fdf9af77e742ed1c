"""
Tests for branch management, workplace location and staff assignment
"""
from fastapi import status
from app.core.config import settings


def _new_branch(**overrides):
    body = {
        "branch_name": "Hope Pharmacy Salford",
        "branch_code": "sal01",
        "address": "10 Chapel Street",
        "city": "Salford",
        "postcode": "M3 5DW",
        "branch_type": "community",
    }
    body.update(overrides)
    return body


def test_create_branch(client, admin_headers):
    response = client.post("/api/v1/branches", json=_new_branch(), headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["branch_code"] == "SAL01"
    assert data["is_active"] is True
    assert data["staff_count"] == 0


def test_create_branch_duplicate_code(client, admin_headers, branch):
    response = client.post("/api/v1/branches", json=_new_branch(branch_code="man01"), headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_staff_cannot_create_branch(client, staff_headers):
    response = client.post("/api/v1/branches", json=_new_branch(), headers=staff_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_branches_with_staff_count(client, admin_headers, branch, assigned_staff):
    response = client.get("/api/v1/branches", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == branch.id
    assert data[0]["staff_count"] == 1


def test_update_and_deactivate_branch(client, admin_headers, branch):
    response = client.patch(f"/api/v1/branches/{branch.id}", json={"phone_number": "0161 000 0000"}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["phone_number"] == "0161 000 0000"

    response = client.delete(f"/api/v1/branches/{branch.id}", headers=admin_headers)
    assert response.json()["is_active"] is False

    listed = client.get("/api/v1/branches", headers=admin_headers).json()
    assert listed == []
    listed = client.get("/api/v1/branches", params={"include_inactive": True}, headers=admin_headers).json()
    assert len(listed) == 1


def test_set_and_get_location(client, admin_headers, staff_headers, branch):
    response = client.put(
        f"/api/v1/branches/{branch.id}/location",
        json={"latitude": 53.4794, "longitude": -2.2453, "radius_meters": 120, "address": "Market Street"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["allowed_radius_meters"] == 120

    response = client.get(f"/api/v1/branches/{branch.id}/location", headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["latitude"] == 53.4794
    assert data["address"] == "Market Street"


def test_location_without_radius_uses_default(client, admin_headers, branch):
    response = client.put(
        f"/api/v1/branches/{branch.id}/location",
        json={"latitude": 53.4794, "longitude": -2.2453},
        headers=admin_headers,
    )
    assert response.json()["allowed_radius_meters"] == settings.DEFAULT_BRANCH_RADIUS_METERS


def test_location_radius_bounds(client, admin_headers, branch):
    response = client.put(
        f"/api/v1/branches/{branch.id}/location",
        json={"latitude": 53.4794, "longitude": -2.2453, "radius_meters": 5},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_location_missing(client, admin_headers):
    created = client.post("/api/v1/branches", json=_new_branch(), headers=admin_headers).json()
    response = client.get(f"/api/v1/branches/{created['id']}/location", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_assign_and_remove_staff(client, admin_headers, staff_headers, branch, staff_user):
    response = client.post(
        f"/api/v1/branches/{branch.id}/staff",
        json={"user_id": staff_user.id, "position": "Dispenser"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["user_name"] == "Sam Staff"

    mine = client.get("/api/v1/branches/mine", headers=staff_headers).json()
    assert [b["id"] for b in mine] == [branch.id]

    staff = client.get(f"/api/v1/branches/{branch.id}/staff", headers=admin_headers).json()
    assert [s["user_id"] for s in staff] == [staff_user.id]

    response = client.delete(f"/api/v1/branches/{branch.id}/staff/{staff_user.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_active"] is False
    assert client.get("/api/v1/branches/mine", headers=staff_headers).json() == []


def test_assign_to_inactive_branch_rejected(client, admin_headers, branch, staff_user):
    client.delete(f"/api/v1/branches/{branch.id}", headers=admin_headers)
    response = client.post(
        f"/api/v1/branches/{branch.id}/staff",
        json={"user_id": staff_user.id},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
