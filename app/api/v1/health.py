"""
Health check endpoint
"""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.constants import SERVICE_NAME
from app.core.deps import get_db
from app.utils.datetime_utils import iso_8601_utc, now_utc

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Returns service status and a database round-trip check; 503 when the database is unreachable.
    """
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check database failure: %s", e)
        database = "error"

    body = {
        "status": "ok" if database == "ok" else "degraded",
        "service": SERVICE_NAME,
        "timestamp": iso_8601_utc(now_utc()),
        "database": database,
    }
    if database != "ok":
        return JSONResponse(status_code=503, content=body)
    return body
