"""
Staff account management (administrators only)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import get_db, require_roles
from app.models.user import Role, User
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services import user_service

router = APIRouter()


@router.post("", response_model=UserOut, status_code=201)
def create_user_endpoint(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    """Create a staff account"""
    return user_service.create_user(db, user_data, current_user.id)


@router.get("", response_model=List[UserOut])
def list_users_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    active_only: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    """List accounts, newest first"""
    return user_service.list_users(db, skip=skip, limit=limit, active_only=active_only)


@router.get("/{user_id}", response_model=UserOut)
def get_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    return user_service.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    return user_service.update_user(db, user_id, user_data, current_user.id)


@router.delete("/{user_id}", response_model=UserOut)
def deactivate_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMINISTRATOR))
):
    """Deactivate an account (soft delete)"""
    return user_service.deactivate_user(db, user_id, current_user.id)
