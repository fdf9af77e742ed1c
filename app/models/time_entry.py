"""
Time entry model (clock in / clock out with device coordinates).
At most one open entry (clock_out_time IS NULL) may exist per user.
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, Float, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("pharmacy_branches.id"), nullable=False, index=True)
    clock_in_time = Column(DateTime(timezone=True), nullable=False)
    clock_out_time = Column(DateTime(timezone=True), nullable=True)
    clock_in_latitude = Column(Float, nullable=False)
    clock_in_longitude = Column(Float, nullable=False)
    clock_in_accuracy = Column(Float, nullable=True)
    clock_out_latitude = Column(Float, nullable=True)
    clock_out_longitude = Column(Float, nullable=True)
    clock_out_accuracy = Column(Float, nullable=True)
    clock_in_distance_meters = Column(Integer, nullable=True)
    location_exception = Column(Boolean, default=False, nullable=False)  # clocked in outside the branch radius
    clock_out_location_verified = Column(Boolean, nullable=True)  # False => clocked out without a location fix
    total_hours = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    user = relationship("User", backref="time_entries")
    branch = relationship("Branch")

    __table_args__ = (
        Index(
            "uq_time_entries_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=clock_out_time.is_(None),
            postgresql_where=clock_out_time.is_(None),
        ),
    )
