"""
User service - staff accounts, authentication and the initial administrator
"""
import logging
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.core.config import settings
from app.core.security import hash_password, verify_password
from app.models.user import Role, User
from app.schemas.user import UserCreate, UserUpdate
from app.services.audit_service import log_audit
from app.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def get_user(db: Session, user_id: int) -> User:
    """
    Raises:
        HTTPException: If user not found
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found"
        )
    return user


def create_user(db: Session, user_data: UserCreate, actor_id: int) -> User:
    """
    Create a staff account

    Raises:
        HTTPException: If the email is already registered
    """
    if get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User with email '{user_data.email}' already exists"
        )

    user = User(
        email=user_data.email,
        first_name=user_data.first_name.strip(),
        last_name=user_data.last_name.strip(),
        phone=user_data.phone,
        position=user_data.position,
        role=user_data.role.value,
        password_hash=hash_password(user_data.password),
        active=user_data.active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="user",
        entity_id=user.id,
        meta={"email": user.email, "role": user.role},
    )
    return user


def list_users(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    active_only: Optional[bool] = None
) -> List[User]:
    """Users, newest first"""
    query = db.query(User)
    if active_only is not None:
        query = query.filter(User.active == active_only)
    return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()


def update_user(db: Session, user_id: int, user_data: UserUpdate, actor_id: int) -> User:
    user = get_user(db, user_id)

    changes = user_data.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if "role" in changes and changes["role"] is not None:
        changes["role"] = Role(changes["role"]).value
    for field, value in changes.items():
        setattr(user, field, value)
    if password:
        user.password_hash = hash_password(password)
    db.commit()
    db.refresh(user)

    meta = {k: v for k, v in changes.items()}
    if password:
        meta["password_changed"] = True
    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="user",
        entity_id=user.id,
        meta=meta,
    )
    return user


def deactivate_user(db: Session, user_id: int, actor_id: int) -> User:
    """
    Soft delete: accounts are never removed because time entries reference them

    Raises:
        HTTPException: If an administrator tries to deactivate their own account
    """
    if user_id == actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account"
        )
    user = get_user(db, user_id)
    user.active = False
    db.commit()
    db.refresh(user)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="DEACTIVATE",
        entity_type="user",
        entity_id=user.id,
        meta={"email": user.email},
    )
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """Active user matching email and password, or None"""
    user = get_user_by_email(db, email)
    if not user or not user.active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def record_login(db: Session, user: User) -> None:
    user.last_login_at = now_utc()
    db.commit()
    log_audit(
        db=db,
        actor_id=user.id,
        action="AUTH_LOGIN_SUCCESS",
        entity_type="user",
        entity_id=user.id,
        meta={"email": user.email},
    )


def ensure_initial_admin(db: Session) -> Optional[User]:
    """
    Create the initial administrator when the database has none.

    Returns:
        The created user, or None when an administrator already exists
    """
    existing = db.query(User).filter(User.role == Role.ADMINISTRATOR.value).first()
    if existing:
        return None

    admin = User(
        email=settings.INITIAL_ADMIN_EMAIL.strip().lower(),
        first_name="System",
        last_name="Administrator",
        role=Role.ADMINISTRATOR.value,
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    _log.info("Initial administrator created: %s", admin.email)
    return admin
