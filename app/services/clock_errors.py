"""
Typed errors for location verification and the clock-in/out state machine.

Every failure the clock flow can report maps to exactly one ClockErrorKind.
PERMISSION_DENIED is the only kind that asks the caller to re-prompt for permission.
"""
import enum
from typing import Any, Dict, Optional


class ClockErrorKind(str, enum.Enum):
    UNSUPPORTED = "UNSUPPORTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    NO_BRANCH_ASSIGNED = "NO_BRANCH_ASSIGNED"
    NO_WORKPLACE_CONFIGURED = "NO_WORKPLACE_CONFIGURED"
    MUTATION_FAILED = "MUTATION_FAILED"
    FEATURE_UNAVAILABLE = "FEATURE_UNAVAILABLE"


LOCATION_ERROR_KINDS = frozenset({
    ClockErrorKind.UNSUPPORTED,
    ClockErrorKind.PERMISSION_DENIED,
    ClockErrorKind.POSITION_UNAVAILABLE,
    ClockErrorKind.TIMEOUT,
})

# Terminal for the current session: only an administrator can fix these
TERMINAL_ERROR_KINDS = frozenset({
    ClockErrorKind.NO_BRANCH_ASSIGNED,
    ClockErrorKind.NO_WORKPLACE_CONFIGURED,
})


class ClockError(Exception):
    """Base class for all clock-flow errors."""

    kind: ClockErrorKind = ClockErrorKind.MUTATION_FAILED

    def __init__(self, message: str, *, kind: Optional[ClockErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def needs_permission(self) -> bool:
        return self.kind == ClockErrorKind.PERMISSION_DENIED

    @property
    def recoverable(self) -> bool:
        return self.kind not in TERMINAL_ERROR_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.kind.value,
            "message": self.message,
            "needs_permission": self.needs_permission,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class LocationError(ClockError):
    """Geolocation failure: unsupported, permission denied, position unavailable or timeout."""

    def __init__(self, kind: ClockErrorKind, message: str):
        if kind not in LOCATION_ERROR_KINDS:
            raise ValueError(f"{kind.value} is not a location error kind")
        super().__init__(message, kind=kind)


class NoBranchAssignedError(ClockError):
    kind = ClockErrorKind.NO_BRANCH_ASSIGNED

    def __init__(self, message: str = "No branch assigned. Please contact your administrator."):
        super().__init__(message)


class NoWorkplaceConfiguredError(ClockError):
    kind = ClockErrorKind.NO_WORKPLACE_CONFIGURED

    def __init__(
        self,
        message: str = "No workplace location configured for your branch. Please contact your administrator.",
    ):
        super().__init__(message)


class StoreError(ClockError):
    """The time-entry store rejected a read or a mutation; message is surfaced verbatim."""
    kind = ClockErrorKind.MUTATION_FAILED


class FeatureUnavailableError(ClockError):
    kind = ClockErrorKind.FEATURE_UNAVAILABLE

    def __init__(self, message: str = "Break tracking is not available for this pharmacy yet."):
        super().__init__(message)
