"""
Per-request wiring of ClockController for the HTTP API.

The device's fix (or its location error) arrives in the request body, and the
human confirmations the controller may ask for arrive as request flags.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.location import DeviceLocationReport
from app.services import branch_service
from app.services.clock_controller import ClockController, ConfirmationKind, ConfirmationRequest
from app.services.clock_stores import SqlBranchLocationStore, SqlTimeEntryStore
from app.services.geolocation import ReportedPermission, ReportedPositionProvider
from app.services.location_service import LocationService

_log = logging.getLogger(__name__)


class RequestConfirmer:
    """Answers confirmation prompts from flags the client sent; remembers what was asked."""

    def __init__(self, approved: Iterable[ConfirmationKind] = ()):
        self.approved = frozenset(approved)
        self.asked: List[ConfirmationRequest] = []

    def __call__(self, request: ConfirmationRequest) -> bool:
        self.asked.append(request)
        answer = request.kind in self.approved
        _log.debug("Confirmation %s answered %s", request.kind.value, answer)
        return answer


def build_location_service(report: Optional[DeviceLocationReport]) -> LocationService:
    """No report means the device has no usable geolocation for this request."""
    if report is None:
        return LocationService()
    provider = ReportedPositionProvider(
        report, max_report_age_seconds=settings.LOCATION_REPORT_MAX_AGE_SECONDS
    )
    permissions = ReportedPermission(report.permission_state) if report.permission_state else None
    return LocationService(provider, permissions)


def build_clock_controller(
    db: Session,
    user_id: int,
    *,
    report: Optional[DeviceLocationReport] = None,
    confirmer: Optional[RequestConfirmer] = None,
) -> ClockController:
    """Controller for one user with the SQL stores; state is loaded before returning."""
    controller = ClockController(
        user_id,
        branch_service.get_assigned_branch_id(db, user_id),
        location_service=build_location_service(report),
        entries=SqlTimeEntryStore(db, user_id),
        branch_locations=SqlBranchLocationStore(db),
        confirm=confirmer or RequestConfirmer(),
    )
    controller.load()
    return controller
