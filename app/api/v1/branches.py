"""
Pharmacy branch endpoints: branches, workplace location, staff assignment and branch time entries
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.deps import get_db, get_current_user, require_roles
from app.models.user import Role, User
from app.schemas.branch import (
    BranchCreate,
    BranchLocationOut,
    BranchLocationUpdate,
    BranchOut,
    BranchUpdate,
    StaffAssignmentCreate,
    StaffAssignmentOut,
)
from app.schemas.time_entry import BranchTimeEntriesResponse, ClockedInStaff, TimeEntryDto
from app.services import branch_service, time_entry_service
from app.utils.datetime_utils import elapsed_since, format_hours_minutes

router = APIRouter()


def _branch_out(branch, staff_count: int) -> BranchOut:
    out = BranchOut.model_validate(branch)
    out.staff_count = staff_count
    return out


def _location_out(location) -> BranchLocationOut:
    return BranchLocationOut(
        branch_id=location.branch_id,
        latitude=location.latitude,
        longitude=location.longitude,
        allowed_radius_meters=location.radius_meters or settings.DEFAULT_BRANCH_RADIUS_METERS,
        address=location.address,
        updated_at=location.updated_at,
    )


def _assignment_out(assignment) -> StaffAssignmentOut:
    out = StaffAssignmentOut.model_validate(assignment)
    out.user_name = assignment.user.full_name if assignment.user else None
    return out


@router.get("", response_model=List[BranchOut])
def list_branches_endpoint(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.MANAGER))
):
    """Branches with active staff counts"""
    return [_branch_out(b, count) for b, count in branch_service.list_branches(db, include_inactive)]


@router.get("/mine", response_model=List[BranchOut])
def my_branches_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Branches the caller is assigned to; the first one is used for clocking"""
    branches = branch_service.list_user_branches(db, current_user.id)
    return [_branch_out(b, branch_service.staff_count(db, b.id)) for b in branches]


@router.post("", response_model=BranchOut, status_code=201)
def create_branch_endpoint(
    branch_data: BranchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    branch = branch_service.create_branch(db, branch_data, current_user.id)
    return _branch_out(branch, 0)


@router.get("/{branch_id}", response_model=BranchOut)
def get_branch_endpoint(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.MANAGER))
):
    branch = branch_service.get_branch(db, branch_id)
    return _branch_out(branch, branch_service.staff_count(db, branch.id))


@router.patch("/{branch_id}", response_model=BranchOut)
def update_branch_endpoint(
    branch_id: int,
    branch_data: BranchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    branch = branch_service.update_branch(db, branch_id, branch_data, current_user.id)
    return _branch_out(branch, branch_service.staff_count(db, branch.id))


@router.delete("/{branch_id}", response_model=BranchOut)
def deactivate_branch_endpoint(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    """Deactivate a branch (soft delete)"""
    branch = branch_service.deactivate_branch(db, branch_id, current_user.id)
    return _branch_out(branch, branch_service.staff_count(db, branch.id))


@router.put("/{branch_id}/location", response_model=BranchLocationOut)
def set_location_endpoint(
    branch_id: int,
    location_data: BranchLocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    """Set the workplace point and clock-in radius of a branch"""
    location = branch_service.set_branch_location(db, branch_id, location_data, current_user.id)
    return _location_out(location)


@router.get("/{branch_id}/location", response_model=BranchLocationOut)
def get_location_endpoint(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    branch_service.get_branch(db, branch_id)
    location = branch_service.get_branch_location(db, branch_id)
    if location is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No workplace location configured for this branch"
        )
    return _location_out(location)


@router.post("/{branch_id}/staff", response_model=StaffAssignmentOut, status_code=201)
def assign_staff_endpoint(
    branch_id: int,
    assignment_data: StaffAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    return _assignment_out(branch_service.assign_staff(db, branch_id, assignment_data, current_user.id))


@router.get("/{branch_id}/staff", response_model=List[StaffAssignmentOut])
def list_staff_endpoint(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.MANAGER))
):
    return [_assignment_out(a) for a in branch_service.list_branch_staff(db, branch_id)]


@router.delete("/{branch_id}/staff/{user_id}", response_model=StaffAssignmentOut)
def remove_staff_endpoint(
    branch_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    return _assignment_out(branch_service.remove_staff(db, branch_id, user_id, current_user.id))


@router.get("/{branch_id}/time-entries", response_model=BranchTimeEntriesResponse)
def branch_time_entries_endpoint(
    branch_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    location_exception: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.MANAGER))
):
    """
    Time entries at a branch for one local calendar day (all days when omitted),
    optionally only out-of-range clock-ins, with the staff currently clocked in
    """
    branch_service.get_branch(db, branch_id)
    entries = time_entry_service.list_branch_entries(db, branch_id, on_date, location_exception)
    open_entries = time_entry_service.list_branch_open_entries(db, branch_id)

    items = [TimeEntryDto.model_validate(e) for e in entries]
    clocked_in = [
        ClockedInStaff(
            user_id=e.user_id,
            user_name=e.user.full_name if e.user else None,
            entry_id=e.id,
            clock_in_time=e.clock_in_time,
            working_time=format_hours_minutes(elapsed_since(e.clock_in_time)),
            location_exception=e.location_exception,
        )
        for e in open_entries
    ]
    return BranchTimeEntriesResponse(
        branch_id=branch_id,
        day=on_date,
        items=items,
        total=len(items),
        clocked_in=clocked_in,
        clocked_in_count=len(clocked_in),
        location_exception_count=sum(1 for e in entries if e.location_exception),
    )
