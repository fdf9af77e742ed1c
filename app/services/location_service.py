"""
Location service: permission-aware access to a geolocation provider, Haversine
distance and workplace-radius checks.

The provider and the permission capability are injected; a service built
without a provider reports itself unsupported, one built without a permission
capability optimistically reports that it can prompt.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from app.core.config import settings
from app.core.constants import (
    ACCURACY_HIGH_METERS,
    ACCURACY_MEDIUM_METERS,
    ACCURACY_VERY_HIGH_METERS,
    EARTH_RADIUS_METERS,
)
from app.schemas.location import Coordinates, LocationCheckResult, PermissionState, PositionOptions
from app.services.clock_errors import ClockErrorKind, LocationError
from app.services.geolocation import (
    PERMISSION_DENIED,
    POSITION_UNAVAILABLE,
    TIMEOUT,
    GeolocationProvider,
    PermissionQuery,
    PositionError,
)

_log = logging.getLogger(__name__)

_KIND_BY_CODE = {
    PERMISSION_DENIED: ClockErrorKind.PERMISSION_DENIED,
    POSITION_UNAVAILABLE: ClockErrorKind.POSITION_UNAVAILABLE,
    TIMEOUT: ClockErrorKind.TIMEOUT,
}

# Messages for the explicit permission request (may need a manual re-grant)
_ACCESS_MESSAGES = {
    ClockErrorKind.PERMISSION_DENIED: (
        "Location access was denied. If no prompt appeared, enable location for this site "
        "in your browser settings and try again."
    ),
    ClockErrorKind.POSITION_UNAVAILABLE: (
        "Your location is currently unavailable. Please ensure location services are enabled on your device."
    ),
    ClockErrorKind.TIMEOUT: (
        "Location request timed out. Please try again or move to an area with better GPS signal."
    ),
}

# Messages once permission is established
_POSITION_MESSAGES = {
    ClockErrorKind.PERMISSION_DENIED: "Location access denied. Please enable location permissions.",
    ClockErrorKind.POSITION_UNAVAILABLE: "Location unavailable. Please enable location services.",
    ClockErrorKind.TIMEOUT: "Location request timed out. Please try again.",
}

_PERMISSION_MESSAGES = {
    "granted": "Location permission granted",
    "denied": "Location permission denied - please enable in browser settings",
    "prompt": "Ready to request location permission",
}

UNSUPPORTED_MESSAGE = "Location services are not supported by your device"


@dataclass(frozen=True)
class LocationResult:
    """Either coordinates or a classified LocationError."""
    coordinates: Optional[Coordinates] = None
    error: Optional[LocationError] = None

    @property
    def success(self) -> bool:
        return self.coordinates is not None and self.error is None

    @property
    def needs_permission(self) -> bool:
        return self.error is not None and self.error.needs_permission


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_distance(a: Coordinates, b: Coordinates) -> int:
    """Great-circle (Haversine) distance between two points, in whole meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return _round_half_up(EARTH_RADIUS_METERS * c)


def format_distance(meters: int) -> str:
    if meters < 1000:
        return f"{meters}m"
    return f"{meters / 1000:.1f}km"


def format_accuracy(accuracy: Optional[float]) -> str:
    if not accuracy:
        return "Unknown accuracy"
    rounded = _round_half_up(accuracy)
    if accuracy <= ACCURACY_VERY_HIGH_METERS:
        return f"Very high accuracy (±{rounded}m)"
    if accuracy <= ACCURACY_HIGH_METERS:
        return f"High accuracy (±{rounded}m)"
    if accuracy <= ACCURACY_MEDIUM_METERS:
        return f"Medium accuracy (±{rounded}m)"
    return f"Low accuracy (±{rounded}m)"


def format_coordinates(coords: Coordinates, precision: int = 6) -> str:
    return f"{coords.latitude:.{precision}f}, {coords.longitude:.{precision}f}"


def location_status_message(is_within_radius: bool, distance: int, allowed_radius: int) -> str:
    if is_within_radius:
        return f"OK: You are at your workplace ({format_distance(distance)} from center)"
    excess = distance - allowed_radius
    return f"Error: You are {format_distance(excess)} beyond the allowed work area"


class LocationService:
    """Facade over one device's geolocation capability."""

    def __init__(
        self,
        geolocation: Optional[GeolocationProvider] = None,
        permissions: Optional[PermissionQuery] = None,
        *,
        access_timeout_ms: Optional[int] = None,
        position_timeout_ms: Optional[int] = None,
        position_max_age_ms: Optional[int] = None,
    ):
        self._geolocation = geolocation
        self._permissions = permissions
        self.access_timeout_ms = access_timeout_ms or settings.LOCATION_ACCESS_TIMEOUT_MS
        self.position_timeout_ms = position_timeout_ms or settings.LOCATION_POSITION_TIMEOUT_MS
        self.position_max_age_ms = (
            settings.LOCATION_POSITION_MAX_AGE_MS if position_max_age_ms is None else position_max_age_ms
        )
        self.current_position: Optional[Coordinates] = None
        self.permission_state: Optional[PermissionState] = None

    def is_supported(self) -> bool:
        return self._geolocation is not None

    def check_permission_status(self) -> PermissionState:
        """Query the permission capability; never prompts the user."""
        if not self.is_supported():
            return PermissionState(denied=True, message=UNSUPPORTED_MESSAGE)

        if self._permissions is None:
            return PermissionState(can_prompt=True, message=_PERMISSION_MESSAGES["prompt"])

        try:
            state = self._permissions.query()
        except Exception as exc:
            _log.warning("Permission query failed: %s", exc)
            return PermissionState(can_prompt=True, message="Unable to determine permission status")

        permission = PermissionState(
            granted=state == "granted",
            denied=state == "denied",
            can_prompt=state == "prompt",
            message=_PERMISSION_MESSAGES.get(state, "Unknown permission state"),
        )
        self.permission_state = permission
        return permission

    def request_location_access(self) -> LocationResult:
        """Fresh high-accuracy fix; used to trigger or re-test the permission grant."""
        options = PositionOptions(
            enable_high_accuracy=True,
            timeout_ms=self.access_timeout_ms,
            maximum_age_ms=0,
        )
        _log.debug("Requesting location access (timeout=%sms)", options.timeout_ms)
        return self._acquire(options, _ACCESS_MESSAGES)

    def get_current_position(self) -> LocationResult:
        """Fix for an already-permitted device; a cached position up to the max age is acceptable."""
        options = PositionOptions(
            enable_high_accuracy=True,
            timeout_ms=self.position_timeout_ms,
            maximum_age_ms=self.position_max_age_ms,
        )
        return self._acquire(options, _POSITION_MESSAGES)

    def _acquire(self, options: PositionOptions, messages: dict) -> LocationResult:
        if not self.is_supported():
            return LocationResult(error=LocationError(ClockErrorKind.UNSUPPORTED, UNSUPPORTED_MESSAGE))

        try:
            coords = self._geolocation.get_current_position(options)
        except PositionError as exc:
            kind = _KIND_BY_CODE.get(exc.code)
            if kind is None:
                _log.warning("Unknown geolocation error code=%s: %s", exc.code, exc.message)
                return LocationResult(error=LocationError(
                    ClockErrorKind.POSITION_UNAVAILABLE, f"Location error: {exc.message}"
                ))
            _log.info("Location acquisition failed: kind=%s detail=%s", kind.value, exc.message)
            return LocationResult(error=LocationError(kind, messages[kind]))

        self.current_position = coords
        _log.debug(
            "Position obtained: lat=%s lng=%s accuracy=%s", coords.latitude, coords.longitude, coords.accuracy
        )
        return LocationResult(coordinates=coords)

    def calculate_distance(self, a: Coordinates, b: Coordinates) -> int:
        return calculate_distance(a, b)

    def check_work_location(
        self,
        work_latitude: float,
        work_longitude: float,
        allowed_radius: int,
    ) -> LocationCheckResult:
        """
        Compare the current position with a workplace circle.

        Raises:
            LocationError: when no position could be acquired
        """
        result = self.get_current_position()
        if not result.success:
            raise result.error

        workplace = Coordinates(latitude=work_latitude, longitude=work_longitude)
        distance = calculate_distance(result.coordinates, workplace)
        return LocationCheckResult(
            is_within_radius=distance <= allowed_radius,
            distance=distance,
            coordinates=result.coordinates,
            accuracy=result.coordinates.accuracy,
        )
