"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.core.security import create_access_token
from app.models.user import User
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.user import UserOut
from app.services import user_service

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Validates email and password, rejects inactive accounts.
    """
    user = user_service.get_user_by_email(db, login_data.email)
    if user is not None and not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    user = user_service.authenticate(db, login_data.email, login_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    # JWT 'sub' claim must be a string
    access_token = create_access_token(data={
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
    })
    user_service.record_login(db, user)

    return TokenResponse(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return current_user
