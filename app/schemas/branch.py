"""
Branch schemas: pharmacy branches, workplace location and staff assignment
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from app.core.constants import MAX_BRANCH_RADIUS_METERS, MIN_BRANCH_RADIUS_METERS
from app.utils.datetime_utils import iso_8601_utc


class BranchCreate(BaseModel):
    """Schema for creating a branch"""
    branch_name: str = Field(..., min_length=1, description="Branch name")
    branch_code: str = Field(..., min_length=1, description="Branch code (unique)")
    address: str = Field(..., description="Street address")
    city: str = Field(..., description="City")
    state: Optional[str] = None
    postcode: str = Field(..., description="Postcode")
    country: Optional[str] = "United Kingdom"
    phone_number: Optional[str] = None
    email: Optional[str] = None
    branch_type: Optional[str] = Field(None, description="e.g. community, hospital, online")
    pharmacy_license_number: Optional[str] = None
    notes: Optional[str] = None


class BranchUpdate(BaseModel):
    """Schema for updating a branch"""
    branch_name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    branch_type: Optional[str] = None
    pharmacy_license_number: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class BranchOut(BaseModel):
    """Schema for branch output. Datetimes in UTC (Z)."""
    id: int
    branch_name: str
    branch_code: str
    address: str
    city: str
    state: Optional[str] = None
    postcode: str
    country: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    branch_type: Optional[str] = None
    pharmacy_license_number: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    staff_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class BranchLocationUpdate(BaseModel):
    """Set the workplace point of a branch; radius defaults to settings.DEFAULT_BRANCH_RADIUS_METERS"""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_meters: Optional[int] = Field(
        None, ge=MIN_BRANCH_RADIUS_METERS, le=MAX_BRANCH_RADIUS_METERS, description="Allowed clock-in radius"
    )
    address: Optional[str] = None


class BranchLocationOut(BaseModel):
    branch_id: int
    latitude: float
    longitude: float
    allowed_radius_meters: int
    address: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_serializer("updated_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class StaffAssignmentCreate(BaseModel):
    user_id: int
    position: Optional[str] = None
    assignment_date: Optional[date] = Field(None, description="Defaults to today")


class StaffAssignmentOut(BaseModel):
    id: int
    branch_id: int
    user_id: int
    user_name: Optional[str] = None
    position: Optional[str] = None
    assignment_date: date
    end_date: Optional[date] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
