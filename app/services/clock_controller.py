"""
Clock-in / clock-out / break state machine for one user.

States are derived from the store: CLOCKED_OUT (no open entry), CLOCKED_IN
(open entry, no active break), ON_BREAK (open entry and an active break).
Mutations are gated on location verification, fall back to explicit human
confirmation, and are followed by a bounded refresh of the open entry to ride
out replica lag in the store.
"""
import enum
import functools
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.core.config import settings
from app.schemas.location import BranchLocationInfo, LocationCheckResult, PermissionState
from app.schemas.time_entry import BreakDto, ClockInPayload, ClockOutPayload, TimeEntryDto
from app.services.clock_errors import (
    ClockError,
    FeatureUnavailableError,
    NoBranchAssignedError,
    NoWorkplaceConfiguredError,
    StoreError,
)
from app.services.clock_stores import BranchLocationStore, TimeEntryStore
from app.services.location_service import LocationResult, LocationService, format_distance
from app.utils.datetime_utils import elapsed_since, format_hours_minutes, now_utc
from app.utils.retry import linear_backoff, retry

_log = logging.getLogger(__name__)


class ClockState(str, enum.Enum):
    CLOCKED_OUT = "CLOCKED_OUT"
    CLOCKED_IN = "CLOCKED_IN"
    ON_BREAK = "ON_BREAK"


class ConfirmationKind(str, enum.Enum):
    LOCATION_EXCEPTION = "LOCATION_EXCEPTION"
    CLOCK_OUT = "CLOCK_OUT"
    CLOCK_OUT_WITHOUT_LOCATION = "CLOCK_OUT_WITHOUT_LOCATION"


@dataclass(frozen=True)
class ConfirmationRequest:
    kind: ConfirmationKind
    message: str


Confirm = Callable[[ConfirmationRequest], bool]


@dataclass
class ClockResult:
    """Outcome of a clock action. Exactly one of success, error or declined applies."""
    state: ClockState
    entry: Optional[TimeEntryDto] = None
    error: Optional[ClockError] = None
    declined: Optional[ConfirmationRequest] = None
    location: Optional[LocationCheckResult] = None
    location_exception: bool = False
    message: str = ""
    refresh_attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.declined is None


def _serialized(method):
    """Reject a second mutation while one is in flight."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._busy:
            return self._fail(StoreError("Another clock operation is already in progress"))
        self._busy = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._busy = False
    return wrapper


class ClockController:
    def __init__(
        self,
        user_id: int,
        branch_id: Optional[int],
        *,
        location_service: LocationService,
        entries: TimeEntryStore,
        branch_locations: BranchLocationStore,
        confirm: Confirm,
        refresh_attempts: Optional[int] = None,
        refresh_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.user_id = user_id
        self.branch_id = branch_id
        self._location = location_service
        self._entries = entries
        self._branch_locations = branch_locations
        self._confirm = confirm
        self._refresh_attempts = refresh_attempts or settings.CLOCK_REFRESH_MAX_ATTEMPTS
        self._refresh_delay = (
            settings.CLOCK_REFRESH_BASE_DELAY_SECONDS if refresh_delay_seconds is None else refresh_delay_seconds
        )
        self._sleep = sleep
        self._clock = clock

        self.current_entry: Optional[TimeEntryDto] = None
        self.current_break: Optional[BreakDto] = None
        self.has_permission = False
        self.last_check: Optional[LocationCheckResult] = None
        self._branch_location: Optional[BranchLocationInfo] = None
        self._branch_location_loaded = False
        self._busy = False

    # --- state ---

    @property
    def state(self) -> ClockState:
        if self.current_entry is None:
            return ClockState.CLOCKED_OUT
        if self.current_break is not None:
            return ClockState.ON_BREAK
        return ClockState.CLOCKED_IN

    @property
    def busy(self) -> bool:
        return self._busy

    def load(self) -> ClockState:
        """Initial state from the store; also primes branch location and permission status."""
        self.current_entry = self._entries.fetch_open_entry(self.user_id)
        self.current_break = self._load_active_break()
        if self.branch_id is not None:
            self.get_branch_location()
        self.refresh_permission_status()
        _log.debug("Clock state loaded: user_id=%s state=%s", self.user_id, self.state.value)
        return self.state

    def _load_active_break(self) -> Optional[BreakDto]:
        if self.current_entry is None:
            return None
        try:
            return self._entries.fetch_active_break(self.current_entry.id)
        except FeatureUnavailableError:
            return None

    def get_branch_location(self) -> Optional[BranchLocationInfo]:
        """Branch workplace point, fetched once per controller."""
        if not self._branch_location_loaded and self.branch_id is not None:
            self._branch_location = self._branch_locations.fetch_by_branch_id(self.branch_id)
            self._branch_location_loaded = True
        return self._branch_location

    def working_time(self, now: Optional[datetime] = None) -> timedelta:
        if self.current_entry is None:
            return timedelta(0)
        return elapsed_since(self.current_entry.clock_in_time, now or self._clock())

    def working_time_label(self, now: Optional[datetime] = None) -> str:
        if self.current_entry is None:
            return ""
        return format_hours_minutes(self.working_time(now))

    # --- location ---

    def refresh_permission_status(self) -> PermissionState:
        permission = self._location.check_permission_status()
        self.has_permission = permission.granted
        return permission

    def request_location_permission(self) -> LocationResult:
        result = self._location.request_location_access()
        self.has_permission = result.success
        return result

    def check_user_location(self) -> LocationCheckResult:
        """
        Raises:
            NoWorkplaceConfiguredError: the branch has no workplace location
            LocationError: no position could be acquired
        """
        workplace = self.get_branch_location()
        if workplace is None:
            raise NoWorkplaceConfiguredError()
        check = self._location.check_work_location(
            workplace.latitude, workplace.longitude, workplace.allowed_radius_meters
        )
        self.last_check = check
        return check

    # --- transitions ---

    @_serialized
    def clock_in(self, notes: Optional[str] = None) -> ClockResult:
        if self.state != ClockState.CLOCKED_OUT:
            return self._fail(StoreError("You are already clocked in"))
        if self.branch_id is None:
            return self._fail(NoBranchAssignedError())

        if not self.has_permission:
            access = self.request_location_permission()
            if not access.success:
                return self._fail(access.error)

        try:
            check = self.check_user_location()
        except ClockError as exc:
            return self._fail(exc)

        location_exception = not check.is_within_radius
        if location_exception:
            request = ConfirmationRequest(
                ConfirmationKind.LOCATION_EXCEPTION,
                f"You are {format_distance(check.distance)} away from your workplace. "
                f"Are you sure you want to clock in?",
            )
            if not self._confirm(request):
                _log.info("Clock-in declined outside radius: user_id=%s distance=%sm", self.user_id, check.distance)
                return ClockResult(
                    state=self.state,
                    declined=request,
                    location=check,
                    message="Clock-in cancelled",
                )

        payload = ClockInPayload(
            user_id=self.user_id,
            branch_id=self.branch_id,
            coordinates=check.coordinates,
            distance_meters=check.distance,
            location_exception=location_exception,
            notes=(notes or "").strip() or None,
        )
        try:
            entry = self._entries.insert_entry(payload)
        except ClockError as exc:
            return self._fail(exc)

        self.current_entry = entry
        self.current_break = None
        attempts = self._refresh_open_entry(lambda found: found is not None and found.id == entry.id)

        message = "Successfully clocked in"
        if location_exception:
            message += " (location exception - please speak with your supervisor)"
        return ClockResult(
            state=self.state,
            entry=self.current_entry,
            location=check,
            location_exception=location_exception,
            message=message,
            refresh_attempts=attempts,
        )

    @_serialized
    def clock_out(self, notes: Optional[str] = None) -> ClockResult:
        if self.current_entry is None:
            return self._fail(StoreError("No active time entry found. Please refresh."))

        request = ConfirmationRequest(
            ConfirmationKind.CLOCK_OUT,
            f"Are you sure you want to clock out?\n\nWorking time: {self.working_time_label()}",
        )
        if not self._confirm(request):
            return ClockResult(state=self.state, declined=request, message="Clock-out cancelled")

        check: Optional[LocationCheckResult] = None
        try:
            check = self.check_user_location()
        except ClockError as exc:
            _log.info("Clock-out location unavailable: user_id=%s kind=%s", self.user_id, exc.kind.value)
            fallback = ConfirmationRequest(
                ConfirmationKind.CLOCK_OUT_WITHOUT_LOCATION,
                f"Could not verify your location ({exc.message}). Do you want to clock out anyway?",
            )
            if not self._confirm(fallback):
                return ClockResult(state=self.state, error=exc, declined=fallback, message="Clock-out cancelled")

        coords = check.coordinates if check else None
        payload = ClockOutPayload(
            clock_out_latitude=coords.latitude if coords else 0.0,
            clock_out_longitude=coords.longitude if coords else 0.0,
            clock_out_accuracy=coords.accuracy if coords else None,
            location_verified=coords is not None,
            notes=(notes or "").strip() or None,
        )
        try:
            closed = self._entries.update_entry(self.current_entry.id, payload)
        except ClockError as exc:
            return self._fail(exc)

        self.current_entry = None
        self.current_break = None
        attempts = self._refresh_open_entry(lambda found: found is None or found.id != closed.id)

        total = f"{closed.total_hours:.1f}h" if closed.total_hours is not None else "unknown"
        return ClockResult(
            state=self.state,
            entry=closed,
            location=check,
            message=f"Successfully clocked out. Total working time: {total}",
            refresh_attempts=attempts,
        )

    @_serialized
    def start_break(self, notes: Optional[str] = None) -> ClockResult:
        if self.state != ClockState.CLOCKED_IN:
            return self._fail(StoreError("You must be clocked in and not already on a break"))
        try:
            started = self._entries.start_break(self.current_entry.id, (notes or "").strip() or None)
        except ClockError as exc:
            return self._fail(exc)
        self.current_break = started
        return ClockResult(state=self.state, entry=self.current_entry, message="Break started")

    @_serialized
    def end_break(self) -> ClockResult:
        if self.state != ClockState.ON_BREAK:
            return self._fail(StoreError("You are not on a break"))
        try:
            self._entries.end_break(self.current_break.id)
        except ClockError as exc:
            return self._fail(exc)
        self.current_break = None
        return ClockResult(state=self.state, entry=self.current_entry, message="Break ended")

    # --- helpers ---

    def _refresh_open_entry(self, accept: Callable[[Optional[TimeEntryDto]], bool]) -> int:
        outcome = retry(
            lambda: self._entries.fetch_open_entry(self.user_id),
            max_attempts=self._refresh_attempts,
            delay_fn=linear_backoff(self._refresh_delay),
            sleep=self._sleep,
            accept=accept,
            label="open entry refresh",
        )
        if outcome.succeeded:
            self.current_entry = outcome.value
        else:
            _log.warning(
                "Open entry refresh did not converge after %s attempts; keeping local state (user_id=%s)",
                outcome.attempts, self.user_id,
            )
        return outcome.attempts

    def _fail(self, error: ClockError) -> ClockResult:
        _log.info("Clock action failed: user_id=%s kind=%s message=%s", self.user_id, error.kind.value, error.message)
        return ClockResult(state=self.state, error=error, message=error.message)
