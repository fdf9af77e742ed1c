"""
Time entry schemas: store records, store payloads and clock HTTP bodies.
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.schemas.location import BranchLocationInfo, Coordinates, DeviceLocationReport, LocationCheckResult
from app.utils.datetime_utils import iso_8601_utc


class TimeEntryDto(BaseModel):
    """Time entry as returned by the store and the API. Datetimes in UTC (Z)."""
    id: int
    user_id: int
    branch_id: int
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    clock_in_latitude: float
    clock_in_longitude: float
    clock_in_accuracy: Optional[float] = None
    clock_out_latitude: Optional[float] = None
    clock_out_longitude: Optional[float] = None
    clock_out_accuracy: Optional[float] = None
    clock_in_distance_meters: Optional[int] = None
    location_exception: bool = False
    clock_out_location_verified: Optional[bool] = None
    total_hours: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("clock_in_time", "clock_out_time", "created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class BreakDto(BaseModel):
    """Break within an open time entry."""
    id: int
    time_entry_id: int
    start: datetime
    end: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start", "end", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class ClockInPayload(BaseModel):
    """Insert payload handed to the time-entry store."""
    user_id: int
    branch_id: int
    coordinates: Coordinates
    distance_meters: Optional[int] = None
    location_exception: bool = False
    notes: Optional[str] = None


class ClockOutPayload(BaseModel):
    """Close payload; zero coordinates when the device could not be located."""
    clock_out_latitude: float = 0.0
    clock_out_longitude: float = 0.0
    clock_out_accuracy: Optional[float] = None
    location_verified: bool = True
    notes: Optional[str] = None


# --- HTTP bodies ---


class ClockInRequest(DeviceLocationReport):
    """Clock-in body: the device report plus notes and the out-of-range override."""
    notes: Optional[str] = Field(None, max_length=1000)
    confirm_location_exception: bool = Field(
        False, description="Clock in even when outside the branch radius"
    )


class ClockOutRequest(DeviceLocationReport):
    """Clock-out body: the device report plus notes and the no-location override."""
    notes: Optional[str] = Field(None, max_length=1000)
    proceed_without_location: bool = Field(
        False, description="Clock out even if the location cannot be verified"
    )


class BreakRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class ClockStatusResponse(BaseModel):
    """Current clock state for the caller; working_time recomputed per request."""
    state: str
    branch_id: Optional[int] = None
    branch_location: Optional[BranchLocationInfo] = None
    entry: Optional[TimeEntryDto] = None
    active_break: Optional[BreakDto] = None
    working_time: Optional[str] = None
    working_minutes: Optional[int] = None


class ClockActionResponse(BaseModel):
    """Result of a successful clock transition."""
    state: str
    message: str
    entry: Optional[TimeEntryDto] = None
    location: Optional[LocationCheckResult] = None
    location_exception: bool = False
    refresh_attempts: int = 0


class TimeEntryListResponse(BaseModel):
    items: List[TimeEntryDto]
    total: int


class ClockedInStaff(BaseModel):
    """One staff member currently clocked in at a branch."""
    user_id: int
    user_name: Optional[str] = None
    entry_id: int
    clock_in_time: datetime
    working_time: str
    location_exception: bool = False

    @field_serializer("clock_in_time", when_used="always")
    def _ser_datetime(self, dt: datetime) -> str:
        return iso_8601_utc(dt)


class BranchTimeEntriesResponse(BaseModel):
    """A branch's entries for the requested day plus who is on shift right now."""
    branch_id: int
    day: Optional[date] = None
    items: List[TimeEntryDto]
    total: int
    clocked_in: List[ClockedInStaff]
    clocked_in_count: int
    location_exception_count: int
