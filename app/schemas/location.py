"""
Location schemas: device coordinates, permission state, work-location checks.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.utils.datetime_utils import iso_8601_utc, now_utc


class Coordinates(BaseModel):
    """A single device fix. Never persisted on its own; copied onto time entries."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, description="Accuracy radius in meters")
    captured_at: datetime = Field(default_factory=now_utc)

    model_config = ConfigDict(frozen=True)

    @field_serializer("captured_at")
    def _ser_captured_at(self, dt: datetime) -> Optional[str]:
        return iso_8601_utc(dt)


class PermissionState(BaseModel):
    """Device location-permission tri-state plus a user-facing message."""
    granted: bool = False
    denied: bool = False
    can_prompt: bool = False
    message: str = ""


class PositionOptions(BaseModel):
    """Options passed to a geolocation provider (W3C PositionOptions)."""
    enable_high_accuracy: bool = True
    timeout_ms: int = Field(15000, gt=0)
    maximum_age_ms: int = Field(0, ge=0)


class BranchLocationInfo(BaseModel):
    """Workplace point of a branch as seen by the clock controller."""
    branch_id: int
    latitude: float
    longitude: float
    allowed_radius_meters: int

    model_config = ConfigDict(from_attributes=True)


class LocationCheckResult(BaseModel):
    """Outcome of comparing the current position with a workplace radius."""
    is_within_radius: bool
    distance: int
    coordinates: Coordinates
    accuracy: Optional[float] = None


# --- HTTP payloads ---


class DeviceLocationReport(BaseModel):
    """
    What a device knows about its location at request time.
    Either a fix (lat/lng) or a location_error code reported by the device
    (PERMISSION_DENIED / POSITION_UNAVAILABLE / TIMEOUT); permission_state is optional.
    """
    lat: Optional[float] = Field(None, ge=-90, le=90, description="GPS latitude")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="GPS longitude")
    accuracy: Optional[float] = Field(None, gt=0, description="Accuracy in meters")
    captured_at: Optional[datetime] = None
    permission_state: Optional[str] = Field(
        None, pattern="^(granted|denied|prompt)$", description="Device permission state, if the platform exposes it"
    )
    location_error: Optional[str] = Field(
        None,
        pattern="^(PERMISSION_DENIED|POSITION_UNAVAILABLE|TIMEOUT)$",
        description="Error the device hit while acquiring a fix",
    )


class LocationCheckRequest(DeviceLocationReport):
    """Body for POST /location/check"""


class LocationCheckResponse(BaseModel):
    """Location check against the caller's branch, with display strings."""
    branch_id: int
    is_within_radius: bool
    distance: int
    allowed_radius_meters: int
    accuracy: Optional[float] = None
    coordinates: Coordinates
    distance_label: str
    accuracy_label: str
    message: str
