"""Admin API (administrators only)."""
from fastapi import APIRouter
from app.api.v1.admin import users as admin_users

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_users.router, prefix="/users", tags=["admin-users"])
