"""
User model (pharmacy staff accounts)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class Role(str, enum.Enum):
    ADMINISTRATOR = "administrator"
    MANAGER = "manager"
    PHARMACIST = "pharmacist"
    STAFF = "staff"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    position = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.STAFF.value)
    password_hash = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    branch_assignments = relationship(
        "BranchStaffAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="BranchStaffAssignment.assignment_date.desc()",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
