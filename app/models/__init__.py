"""
Database models
"""
from app.models.user import User, Role
from app.models.branch import Branch, BranchLocation, BranchStaffAssignment
from app.models.time_entry import TimeEntry
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "Role",
    "Branch",
    "BranchLocation",
    "BranchStaffAssignment",
    "TimeEntry",
    "AuditLog",
]
