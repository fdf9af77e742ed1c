"""
Time tracking endpoints: clock state, clock in/out with geofencing, breaks, history.

Handlers are plain functions so the refresh backoff runs in the threadpool.
"""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.user import User
from app.schemas.time_entry import (
    BreakRequest,
    ClockActionResponse,
    ClockInRequest,
    ClockOutRequest,
    ClockStatusResponse,
    TimeEntryDto,
    TimeEntryListResponse,
)
from app.services import time_entry_service
from app.services.clock_controller import ClockResult, ConfirmationKind
from app.services.clock_service import RequestConfirmer, build_clock_controller
from app.services.location_service import format_distance

router = APIRouter()
logger = logging.getLogger(__name__)


def _action_response(result: ClockResult) -> ClockActionResponse:
    """Successful result as a response body; errors and declined confirmations are raised."""
    if result.declined is not None:
        detail = {
            "code": "CONFIRMATION_REQUIRED",
            "confirmation": result.declined.kind.value,
            "message": result.declined.message,
        }
        if result.location is not None:
            detail["distance"] = result.location.distance
            detail["distance_label"] = format_distance(result.location.distance)
        if result.error is not None:
            detail["location_error"] = result.error.to_dict()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if result.error is not None:
        raise result.error
    return ClockActionResponse(
        state=result.state.value,
        message=result.message,
        entry=result.entry,
        location=result.location,
        location_exception=result.location_exception,
        refresh_attempts=result.refresh_attempts,
    )


@router.get("/current", response_model=ClockStatusResponse)
def current_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Clock state of the caller with the running working time"""
    controller = build_clock_controller(db, current_user.id)
    working = controller.working_time()
    return ClockStatusResponse(
        state=controller.state.value,
        branch_id=controller.branch_id,
        branch_location=controller.get_branch_location(),
        entry=controller.current_entry,
        active_break=controller.current_break,
        working_time=controller.working_time_label() or None,
        working_minutes=int(working.total_seconds() // 60) if controller.current_entry else None,
    )


@router.post("/clock-in", response_model=ClockActionResponse, status_code=201)
def clock_in(
    body: ClockInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Clock in at the caller's branch.

    The device's fix must be within the branch radius; outside it, the request must
    carry confirm_location_exception=true and the entry is flagged as a location exception.
    """
    approved = [ConfirmationKind.LOCATION_EXCEPTION] if body.confirm_location_exception else []
    controller = build_clock_controller(
        db, current_user.id, report=body, confirmer=RequestConfirmer(approved)
    )
    result = controller.clock_in(body.notes)
    return _action_response(result)


@router.post("/clock-out", response_model=ClockActionResponse)
def clock_out(
    body: ClockOutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Clock out of the open entry.

    Calling the endpoint is the clock-out confirmation. When the device cannot be located
    the request must carry proceed_without_location=true; zero coordinates are stored.
    """
    approved = [ConfirmationKind.CLOCK_OUT]
    if body.proceed_without_location:
        approved.append(ConfirmationKind.CLOCK_OUT_WITHOUT_LOCATION)
    controller = build_clock_controller(
        db, current_user.id, report=body, confirmer=RequestConfirmer(approved)
    )
    result = controller.clock_out(body.notes)
    return _action_response(result)


@router.post("/breaks/start", response_model=ClockActionResponse)
def start_break(
    body: Optional[BreakRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    controller = build_clock_controller(db, current_user.id)
    return _action_response(controller.start_break(body.notes if body else None))


@router.post("/breaks/end", response_model=ClockActionResponse)
def end_break(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    controller = build_clock_controller(db, current_user.id)
    return _action_response(controller.end_break())


@router.get("/my", response_model=TimeEntryListResponse)
def my_entries(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Caller's time entries, newest first"""
    entries = time_entry_service.list_user_entries(db, current_user.id, from_date, to_date)
    items = [TimeEntryDto.model_validate(e) for e in entries]
    return TimeEntryListResponse(items=items, total=len(items))
