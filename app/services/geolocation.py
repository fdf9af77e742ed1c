"""
Geolocation capabilities consumed by LocationService.

A provider yields the device's current fix or raises PositionError with a W3C
error code. The permission query is a separate, optional capability: platforms
that cannot introspect permissions simply do not supply one.
"""
import logging
from datetime import datetime
from typing import Optional, Protocol

from app.schemas.location import Coordinates, DeviceLocationReport, PositionOptions
from app.utils.datetime_utils import ensure_utc, now_utc

_log = logging.getLogger(__name__)

# W3C GeolocationPositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

_REPORTED_ERROR_CODES = {
    "PERMISSION_DENIED": PERMISSION_DENIED,
    "POSITION_UNAVAILABLE": POSITION_UNAVAILABLE,
    "TIMEOUT": TIMEOUT,
}

PERMISSION_STATES = ("granted", "denied", "prompt")

# Fixes stamped further ahead of the server clock than this are refused
MAX_CLOCK_SKEW_SECONDS = 60


class PositionError(Exception):
    """Raised by a provider when no fix could be produced."""

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"Geolocation error code {code}")
        self.code = code
        self.message = message


class GeolocationProvider(Protocol):
    def get_current_position(self, options: PositionOptions) -> Coordinates:
        ...


class PermissionQuery(Protocol):
    def query(self) -> str:
        """Return one of 'granted', 'denied', 'prompt'."""
        ...


class ReportedPositionProvider:
    """
    Serves the fix a device sent along with its request.

    The device already did the acquisition, so PositionOptions cannot change the
    result; only fixes older than max_report_age_seconds, or stamped more than
    MAX_CLOCK_SKEW_SECONDS in the future, are refused.
    """

    def __init__(
        self,
        report: DeviceLocationReport,
        *,
        max_report_age_seconds: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        self.report = report
        self.max_report_age_seconds = max_report_age_seconds
        self._now = now

    def get_current_position(self, options: PositionOptions) -> Coordinates:
        report = self.report
        if report.location_error:
            raise PositionError(
                _REPORTED_ERROR_CODES[report.location_error],
                f"Device reported {report.location_error}",
            )
        if report.lat is None or report.lng is None:
            raise PositionError(POSITION_UNAVAILABLE, "No position was reported by the device")

        now = ensure_utc(self._now) if self._now else now_utc()
        captured_at = ensure_utc(report.captured_at) if report.captured_at else now
        skew = (captured_at - now).total_seconds()
        if skew > MAX_CLOCK_SKEW_SECONDS:
            _log.info("Rejecting device fix from the future: ahead=%.0fs limit=%ss", skew, MAX_CLOCK_SKEW_SECONDS)
            raise PositionError(POSITION_UNAVAILABLE, "Reported position time is ahead of the server clock")
        if self.max_report_age_seconds is not None:
            age = (now - captured_at).total_seconds()
            if age > self.max_report_age_seconds:
                _log.info("Rejecting stale device fix: age=%.0fs limit=%ss", age, self.max_report_age_seconds)
                raise PositionError(POSITION_UNAVAILABLE, "Reported position is too old")

        return Coordinates(
            latitude=report.lat,
            longitude=report.lng,
            accuracy=report.accuracy,
            captured_at=captured_at,
        )


class ReportedPermission:
    """Permission state as reported by a device that exposes a permissions API."""

    def __init__(self, state: str):
        if state not in PERMISSION_STATES:
            raise ValueError(f"permission state must be one of {PERMISSION_STATES}")
        self.state = state

    def query(self) -> str:
        return self.state
