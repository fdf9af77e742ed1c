"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    auth,
    branches,
    time_entries,
    location,
)
from app.api.v1.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(admin_router)
api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
api_router.include_router(time_entries.router, prefix="/time-entries", tags=["time-entries"])
api_router.include_router(location.router, prefix="/location", tags=["location"])
