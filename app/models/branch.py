"""
Pharmacy branch, branch workplace location and staff assignment models
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Float, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Branch(Base):
    __tablename__ = "pharmacy_branches"

    id = Column(Integer, primary_key=True, index=True)
    branch_name = Column(String, nullable=False)
    branch_code = Column(String, unique=True, nullable=False, index=True)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=True)
    postcode = Column(String, nullable=False)
    country = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    email = Column(String, nullable=True)
    branch_type = Column(String, nullable=True)
    pharmacy_license_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    location = relationship("BranchLocation", back_populates="branch", uselist=False, cascade="all, delete-orphan")
    staff_assignments = relationship("BranchStaffAssignment", back_populates="branch", cascade="all, delete-orphan")


class BranchLocation(Base):
    """Workplace point and allowed clock-in radius for a branch (one per branch)."""
    __tablename__ = "branch_locations"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("pharmacy_branches.id"), nullable=False, unique=True, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius_meters = Column(Integer, nullable=True)  # NULL => settings.DEFAULT_BRANCH_RADIUS_METERS
    address = Column(String, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    branch = relationship("Branch", back_populates="location")


class BranchStaffAssignment(Base):
    __tablename__ = "branch_staff_assignments"
    __table_args__ = (
        UniqueConstraint("branch_id", "user_id", name="uq_branch_staff_assignments_branch_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("pharmacy_branches.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    position = Column(String, nullable=True)
    assignment_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    branch = relationship("Branch", back_populates="staff_assignments")
    user = relationship("User", back_populates="branch_assignments")
