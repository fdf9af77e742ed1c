"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g., "TIME_ENTRY_CLOCK_IN", "SET_LOCATION", "AUTH_LOGIN_SUCCESS"
    entity_type = Column(String, nullable=False)  # e.g., "time_entry", "branch", "user"
    entity_id = Column(Integer, nullable=True)  # ID of the affected entity
    meta_json = Column(JSON, nullable=True)  # Additional metadata as JSON
    # Set explicitly by log_audit; the migration adds a CURRENT_TIMESTAMP default
    created_at = Column(DateTime(timezone=True), nullable=False)
