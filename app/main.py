"""
Hope Pharmacy IMS Backend - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    http_exception_handler,
    clock_error_handler,
    validation_exception_handler,
    operational_error_handler,
    generic_exception_handler
)
from app.core.logging import setup_logging
from app.db.session import SessionLocal
from app.services.clock_errors import ClockError
from app.services.user_service import ensure_initial_admin

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme.startswith("sqlite"):
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


app = FastAPI(
    title="Hope Pharmacy IMS Backend",
    description="Staff time tracking with geofenced clock-in and pharmacy branch administration",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(ClockError, clock_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(OperationalError, operational_error_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    masked = _mask_database_url(settings.DATABASE_URL)
    logger.info("DATABASE_URL (app): %s", masked)
    settings.validate_production()


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial administrator if none exists.
    This ensures the system always has at least one administrator.
    """
    db = SessionLocal()
    try:
        admin = ensure_initial_admin(db)
        if admin is None:
            logger.info("Administrator already exists, skipping initial bootstrap")
        else:
            logger.info("Initial administrator email: %s", admin.email)
            logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    except OperationalError as e:
        db.rollback()
        # Tables might not exist before the first migration
        if "no such table" in str(e).lower() or "does not exist" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    finally:
        db.close()
