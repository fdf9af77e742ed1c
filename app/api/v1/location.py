"""
Location check endpoint: compare a device fix with the caller's branch radius
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.user import User
from app.schemas.location import LocationCheckRequest, LocationCheckResponse
from app.services.clock_errors import NoBranchAssignedError
from app.services.clock_service import build_clock_controller
from app.services.location_service import format_accuracy, format_distance, location_status_message

router = APIRouter()


@router.post("/check", response_model=LocationCheckResponse)
def check_location(
    body: LocationCheckRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Within-radius check with display strings; nothing is recorded"""
    controller = build_clock_controller(db, current_user.id, report=body)
    if controller.branch_id is None:
        raise NoBranchAssignedError()
    if not controller.has_permission:
        access = controller.request_location_permission()
        if not access.success:
            raise access.error

    check = controller.check_user_location()
    workplace = controller.get_branch_location()
    return LocationCheckResponse(
        branch_id=workplace.branch_id,
        is_within_radius=check.is_within_radius,
        distance=check.distance,
        allowed_radius_meters=workplace.allowed_radius_meters,
        accuracy=check.accuracy,
        coordinates=check.coordinates,
        distance_label=format_distance(check.distance),
        accuracy_label=format_accuracy(check.accuracy),
        message=location_status_message(check.is_within_radius, check.distance, workplace.allowed_radius_meters),
    )
