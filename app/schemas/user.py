"""
User schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict
from app.core.security import validate_password
from app.models.user import Role


class UserCreate(BaseModel):
    """Schema for creating a user"""
    email: str = Field(..., description="Login email (unique)")
    first_name: str = Field(..., min_length=1, description="First name")
    last_name: str = Field(..., min_length=1, description="Last name")
    phone: Optional[str] = Field(None, description="Phone number")
    position: Optional[str] = Field(None, description="Job position, e.g. Dispenser")
    role: Role = Field(default=Role.STAFF, description="User role")
    password: str = Field(..., description="Initial password")
    active: bool = Field(default=True, description="User active status")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if not isinstance(v, str) or "@" not in v:
            raise ValueError("A valid email address is required")
        return v.strip().lower()

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


class UserUpdate(BaseModel):
    """Schema for updating a user"""
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = None
    password: Optional[str] = Field(None, description="New password")

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v):
        if v is None:
            return None
        return validate_password(v)


class UserOut(BaseModel):
    """Schema for user output. Datetimes in UTC (Z)."""
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    position: Optional[str] = None
    role: str
    active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("last_login_at", "created_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)
