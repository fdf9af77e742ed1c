"""
Logging configuration for Hope Pharmacy IMS Backend
"""
import logging
import sys
from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """
    Configure Python logging based on settings

    Sets up:
    - Console handler on stdout with the service format
    - Log level from settings.LOG_LEVEL
    - Quieter third-party loggers (uvicorn access log, SQLAlchemy engine)
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # Location and clock diagnostics are chatty at DEBUG; keep them at the app level
    logging.getLogger("app.services.location_service").setLevel(log_level)
    logging.getLogger("app.services.clock_controller").setLevel(log_level)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s, env=%s", settings.LOG_LEVEL, settings.APP_ENV)
