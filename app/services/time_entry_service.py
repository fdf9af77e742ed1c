"""
Time entry service: open/close entries with device coordinates, history listing.
All timestamps stored in UTC (server time); total_hours is computed server-side on close.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.models.time_entry import TimeEntry
from app.schemas.location import Coordinates
from app.services.audit_service import log_audit
from app.services.clock_errors import StoreError
from app.utils.datetime_utils import ensure_utc, hours_between, local_zone, now_utc

_log = logging.getLogger(__name__)


def _filter_local_days(query, from_date: Optional[date], to_date: Optional[date]):
    """Restrict clock_in_time to whole calendar days in the pharmacy's timezone."""
    zone = local_zone()
    if from_date:
        start = ensure_utc(datetime.combine(from_date, time.min, tzinfo=zone))
        query = query.filter(TimeEntry.clock_in_time >= start)
    if to_date:
        end = ensure_utc(datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=zone))
        query = query.filter(TimeEntry.clock_in_time < end)
    return query


def get_open_entry(db: Session, user_id: int) -> Optional[TimeEntry]:
    """The user's open entry (clock_out_time IS NULL), if any."""
    return (
        db.query(TimeEntry)
        .filter(TimeEntry.user_id == user_id, TimeEntry.clock_out_time.is_(None))
        .order_by(TimeEntry.clock_in_time.desc())
        .first()
    )


def open_time_entry(
    db: Session,
    user_id: int,
    branch_id: int,
    coordinates: Coordinates,
    *,
    distance_meters: Optional[int] = None,
    location_exception: bool = False,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TimeEntry:
    """
    Clock in: create the user's single open entry.

    Raises:
        StoreError: the user already has an open entry
    """
    now = now or now_utc()

    if get_open_entry(db, user_id) is not None:
        raise StoreError("You are already clocked in")

    entry = TimeEntry(
        user_id=user_id,
        branch_id=branch_id,
        clock_in_time=now,
        clock_in_latitude=coordinates.latitude,
        clock_in_longitude=coordinates.longitude,
        clock_in_accuracy=coordinates.accuracy,
        clock_in_distance_meters=distance_meters,
        location_exception=location_exception,
        notes=notes,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent clock-in lost the race on uq_time_entries_open_per_user
        db.rollback()
        _log.info("Concurrent clock-in rejected: user_id=%s", user_id)
        raise StoreError("You are already clocked in")
    db.refresh(entry)

    _log.debug(
        "clock_in persist: user_id=%s branch_id=%s entry_id=%s distance=%s exception=%s",
        user_id, branch_id, entry.id, distance_meters, location_exception,
    )
    log_audit(
        db=db,
        actor_id=user_id,
        action="TIME_ENTRY_CLOCK_IN",
        entity_type="time_entry",
        entity_id=entry.id,
        meta={
            "branch_id": branch_id,
            "clock_in_time": now,
            "distance_meters": distance_meters,
            "accuracy": coordinates.accuracy,
        },
    )
    if location_exception:
        _log.warning(
            "Location exception: user_id=%s branch_id=%s entry_id=%s distance=%sm",
            user_id, branch_id, entry.id, distance_meters,
        )
        log_audit(
            db=db,
            actor_id=user_id,
            action="TIME_ENTRY_LOCATION_EXCEPTION",
            entity_type="time_entry",
            entity_id=entry.id,
            meta={
                "branch_id": branch_id,
                "distance_meters": distance_meters,
                "latitude": coordinates.latitude,
                "longitude": coordinates.longitude,
                "accuracy": coordinates.accuracy,
            },
        )
    return entry


def close_time_entry(
    db: Session,
    entry_id: int,
    user_id: int,
    *,
    latitude: float = 0.0,
    longitude: float = 0.0,
    accuracy: Optional[float] = None,
    location_verified: bool = True,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TimeEntry:
    """
    Clock out: stamp clock_out_time and coordinates, compute total_hours.

    Raises:
        StoreError: entry missing, owned by someone else, or already closed
    """
    now = now or now_utc()

    entry = db.query(TimeEntry).filter(TimeEntry.id == entry_id).first()
    if not entry or entry.user_id != user_id:
        raise StoreError("Time entry not found")
    if entry.clock_out_time is not None:
        raise StoreError("Time entry is already closed")

    entry.clock_out_time = now
    entry.clock_out_latitude = latitude
    entry.clock_out_longitude = longitude
    entry.clock_out_accuracy = accuracy
    entry.clock_out_location_verified = location_verified
    entry.total_hours = hours_between(entry.clock_in_time, now)
    if notes:
        entry.notes = f"{entry.notes}\n{notes}" if entry.notes else notes
    db.commit()
    db.refresh(entry)

    log_audit(
        db=db,
        actor_id=user_id,
        action="TIME_ENTRY_CLOCK_OUT",
        entity_type="time_entry",
        entity_id=entry.id,
        meta={
            "clock_out_time": now,
            "total_hours": entry.total_hours,
            "location_verified": location_verified,
        },
    )
    return entry


def list_user_entries(
    db: Session,
    user_id: int,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[TimeEntry]:
    """
    Entries for one user, newest first. Dates are calendar days in the pharmacy's timezone.
    """
    if from_date and to_date and from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from date must be on or before to date",
        )

    query = db.query(TimeEntry).filter(TimeEntry.user_id == user_id)
    query = _filter_local_days(query, from_date, to_date)
    return query.order_by(TimeEntry.clock_in_time.desc()).all()


def list_branch_entries(
    db: Session,
    branch_id: int,
    on_date: Optional[date] = None,
    location_exception: Optional[bool] = None,
) -> List[TimeEntry]:
    """
    Entries clocked in at a branch, newest first. on_date is a calendar day in the
    pharmacy's timezone; location_exception narrows to (or excludes) out-of-range clock-ins.
    """
    query = db.query(TimeEntry).filter(TimeEntry.branch_id == branch_id)
    query = _filter_local_days(query, on_date, on_date)
    if location_exception is not None:
        query = query.filter(TimeEntry.location_exception.is_(location_exception))
    return query.order_by(TimeEntry.clock_in_time.desc()).all()


def list_branch_open_entries(db: Session, branch_id: int) -> List[TimeEntry]:
    """Staff currently clocked in at a branch, earliest clock-in first."""
    return (
        db.query(TimeEntry)
        .filter(TimeEntry.branch_id == branch_id, TimeEntry.clock_out_time.is_(None))
        .order_by(TimeEntry.clock_in_time.asc())
        .all()
    )
