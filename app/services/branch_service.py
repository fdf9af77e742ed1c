"""
Branch service - pharmacy branches, workplace locations and staff assignments
"""
import logging
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.core.config import settings
from app.models.branch import Branch, BranchLocation, BranchStaffAssignment
from app.models.user import User
from app.schemas.branch import BranchCreate, BranchLocationUpdate, BranchUpdate, StaffAssignmentCreate
from app.schemas.location import BranchLocationInfo
from app.services.audit_service import log_audit

_log = logging.getLogger(__name__)


def create_branch(db: Session, branch_data: BranchCreate, actor_id: int) -> Branch:
    """
    Create a branch

    Raises:
        HTTPException: If the branch code is already in use
    """
    code = branch_data.branch_code.strip().upper()
    existing = db.query(Branch).filter(func.upper(Branch.branch_code) == code).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Branch with code '{code}' already exists"
        )

    values = branch_data.model_dump()
    values["branch_code"] = code
    branch = Branch(**values, is_active=True, created_by=actor_id)
    db.add(branch)
    db.commit()
    db.refresh(branch)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="branch",
        entity_id=branch.id,
        meta={"branch_name": branch.branch_name, "branch_code": branch.branch_code},
    )
    return branch


def get_branch(db: Session, branch_id: int) -> Branch:
    """
    Raises:
        HTTPException: If branch not found
    """
    branch = db.query(Branch).filter(Branch.id == branch_id).first()
    if not branch:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Branch with ID {branch_id} not found"
        )
    return branch


def _staff_counts(db: Session, branch_ids: List[int]) -> dict:
    if not branch_ids:
        return {}
    rows = (
        db.query(BranchStaffAssignment.branch_id, func.count(BranchStaffAssignment.id))
        .filter(
            BranchStaffAssignment.branch_id.in_(branch_ids),
            BranchStaffAssignment.is_active.is_(True),
        )
        .group_by(BranchStaffAssignment.branch_id)
        .all()
    )
    return {branch_id: count for branch_id, count in rows}


def list_branches(db: Session, include_inactive: bool = False) -> List[Tuple[Branch, int]]:
    """Branches ordered by name, each paired with its active staff count"""
    query = db.query(Branch)
    if not include_inactive:
        query = query.filter(Branch.is_active.is_(True))
    branches = query.order_by(Branch.branch_name).all()
    counts = _staff_counts(db, [b.id for b in branches])
    return [(b, counts.get(b.id, 0)) for b in branches]


def staff_count(db: Session, branch_id: int) -> int:
    return _staff_counts(db, [branch_id]).get(branch_id, 0)


def update_branch(db: Session, branch_id: int, branch_data: BranchUpdate, actor_id: int) -> Branch:
    branch = get_branch(db, branch_id)
    changes = branch_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(branch, field, value)
    db.commit()
    db.refresh(branch)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="branch",
        entity_id=branch.id,
        meta=changes,
    )
    return branch


def deactivate_branch(db: Session, branch_id: int, actor_id: int) -> Branch:
    """Soft delete; time entries keep pointing at the branch"""
    branch = get_branch(db, branch_id)
    branch.is_active = False
    db.commit()
    db.refresh(branch)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="DEACTIVATE",
        entity_type="branch",
        entity_id=branch.id,
        meta={"branch_code": branch.branch_code},
    )
    return branch


# --- workplace location ---


def _allowed_radius(location: BranchLocation) -> int:
    return location.radius_meters or settings.DEFAULT_BRANCH_RADIUS_METERS


def set_branch_location(
    db: Session,
    branch_id: int,
    location_data: BranchLocationUpdate,
    actor_id: int
) -> BranchLocation:
    """Create or replace the workplace point of a branch"""
    branch = get_branch(db, branch_id)
    location = db.query(BranchLocation).filter(BranchLocation.branch_id == branch.id).first()
    if location is None:
        location = BranchLocation(branch_id=branch.id)
        db.add(location)
    location.latitude = location_data.latitude
    location.longitude = location_data.longitude
    location.radius_meters = location_data.radius_meters
    location.address = location_data.address
    location.updated_by = actor_id
    db.commit()
    db.refresh(location)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="SET_LOCATION",
        entity_type="branch",
        entity_id=branch.id,
        meta={
            "latitude": location.latitude,
            "longitude": location.longitude,
            "radius_meters": _allowed_radius(location),
        },
    )
    return location


def get_branch_location(db: Session, branch_id: int) -> Optional[BranchLocation]:
    return db.query(BranchLocation).filter(BranchLocation.branch_id == branch_id).first()


def get_branch_location_info(db: Session, branch_id: int) -> Optional[BranchLocationInfo]:
    """Workplace point with the effective radius, or None when not configured"""
    location = get_branch_location(db, branch_id)
    if location is None:
        return None
    return BranchLocationInfo(
        branch_id=location.branch_id,
        latitude=location.latitude,
        longitude=location.longitude,
        allowed_radius_meters=_allowed_radius(location),
    )


# --- staff assignment ---


def assign_staff(
    db: Session,
    branch_id: int,
    assignment_data: StaffAssignmentCreate,
    actor_id: int
) -> BranchStaffAssignment:
    """
    Assign a user to a branch; re-activates a previous assignment to the same branch

    Raises:
        HTTPException: If the branch is inactive or the user does not exist
    """
    branch = get_branch(db, branch_id)
    if not branch.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot assign staff to an inactive branch"
        )
    user = db.query(User).filter(User.id == assignment_data.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {assignment_data.user_id} not found"
        )

    assignment = (
        db.query(BranchStaffAssignment)
        .filter(BranchStaffAssignment.branch_id == branch.id, BranchStaffAssignment.user_id == user.id)
        .first()
    )
    if assignment is None:
        assignment = BranchStaffAssignment(branch_id=branch.id, user_id=user.id)
        db.add(assignment)
    assignment.position = assignment_data.position or user.position
    assignment.assignment_date = assignment_data.assignment_date or date.today()
    assignment.end_date = None
    assignment.is_active = True
    db.commit()
    db.refresh(assignment)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ASSIGN",
        entity_type="branch_staff_assignment",
        entity_id=assignment.id,
        meta={"branch_id": branch.id, "user_id": user.id, "position": assignment.position},
    )
    return assignment


def remove_staff(db: Session, branch_id: int, user_id: int, actor_id: int) -> BranchStaffAssignment:
    assignment = (
        db.query(BranchStaffAssignment)
        .filter(
            BranchStaffAssignment.branch_id == branch_id,
            BranchStaffAssignment.user_id == user_id,
            BranchStaffAssignment.is_active.is_(True),
        )
        .first()
    )
    if not assignment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Active assignment not found"
        )
    assignment.is_active = False
    assignment.end_date = date.today()
    db.commit()
    db.refresh(assignment)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UNASSIGN",
        entity_type="branch_staff_assignment",
        entity_id=assignment.id,
        meta={"branch_id": branch_id, "user_id": user_id},
    )
    return assignment


def list_branch_staff(db: Session, branch_id: int) -> List[BranchStaffAssignment]:
    get_branch(db, branch_id)
    return (
        db.query(BranchStaffAssignment)
        .filter(BranchStaffAssignment.branch_id == branch_id, BranchStaffAssignment.is_active.is_(True))
        .order_by(BranchStaffAssignment.assignment_date.desc())
        .all()
    )


def list_user_branches(db: Session, user_id: int) -> List[Branch]:
    """Active branches the user is actively assigned to, most recent assignment first"""
    return (
        db.query(Branch)
        .join(BranchStaffAssignment, BranchStaffAssignment.branch_id == Branch.id)
        .filter(
            BranchStaffAssignment.user_id == user_id,
            BranchStaffAssignment.is_active.is_(True),
            Branch.is_active.is_(True),
        )
        .order_by(BranchStaffAssignment.assignment_date.desc(), BranchStaffAssignment.id.desc())
        .all()
    )


def get_assigned_branch_id(db: Session, user_id: int) -> Optional[int]:
    """Branch a user clocks in at: their most recent active assignment"""
    branches = list_user_branches(db, user_id)
    if not branches:
        _log.debug("No active branch assignment for user_id=%s", user_id)
        return None
    return branches[0].id
