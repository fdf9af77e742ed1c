"""
Stores consumed by ClockController, and their SQLAlchemy-backed implementations.

Store methods return DTOs rather than ORM rows so the controller never holds a
session-bound object, and they raise ClockError subclasses only.
"""
import logging
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.schemas.location import BranchLocationInfo
from app.schemas.time_entry import BreakDto, ClockInPayload, ClockOutPayload, TimeEntryDto
from app.services import branch_service, time_entry_service
from app.services.clock_errors import FeatureUnavailableError, StoreError

_log = logging.getLogger(__name__)


class TimeEntryStore(Protocol):
    def fetch_open_entry(self, user_id: int) -> Optional[TimeEntryDto]:
        ...

    def insert_entry(self, payload: ClockInPayload) -> TimeEntryDto:
        ...

    def update_entry(self, entry_id: int, payload: ClockOutPayload) -> TimeEntryDto:
        ...

    def fetch_active_break(self, entry_id: int) -> Optional[BreakDto]:
        ...

    def start_break(self, entry_id: int, notes: Optional[str]) -> BreakDto:
        ...

    def end_break(self, break_id: int) -> BreakDto:
        ...


class BranchLocationStore(Protocol):
    def fetch_by_branch_id(self, branch_id: int) -> Optional[BranchLocationInfo]:
        ...


class SqlTimeEntryStore:
    """Time entries for one acting user; breaks have no table and are unavailable."""

    def __init__(self, db: Session, actor_id: int):
        self.db = db
        self.actor_id = actor_id

    def fetch_open_entry(self, user_id: int) -> Optional[TimeEntryDto]:
        try:
            entry = time_entry_service.get_open_entry(self.db, user_id)
        except SQLAlchemyError as exc:
            raise self._store_error("Could not load your current time entry", exc)
        return TimeEntryDto.model_validate(entry) if entry else None

    def insert_entry(self, payload: ClockInPayload) -> TimeEntryDto:
        try:
            entry = time_entry_service.open_time_entry(
                self.db,
                payload.user_id,
                payload.branch_id,
                payload.coordinates,
                distance_meters=payload.distance_meters,
                location_exception=payload.location_exception,
                notes=payload.notes,
            )
        except SQLAlchemyError as exc:
            raise self._store_error("Could not clock in", exc)
        return TimeEntryDto.model_validate(entry)

    def update_entry(self, entry_id: int, payload: ClockOutPayload) -> TimeEntryDto:
        try:
            entry = time_entry_service.close_time_entry(
                self.db,
                entry_id,
                self.actor_id,
                latitude=payload.clock_out_latitude,
                longitude=payload.clock_out_longitude,
                accuracy=payload.clock_out_accuracy,
                location_verified=payload.location_verified,
                notes=payload.notes,
            )
        except SQLAlchemyError as exc:
            raise self._store_error("Could not clock out", exc)
        return TimeEntryDto.model_validate(entry)

    def fetch_active_break(self, entry_id: int) -> Optional[BreakDto]:
        raise FeatureUnavailableError()

    def start_break(self, entry_id: int, notes: Optional[str]) -> BreakDto:
        raise FeatureUnavailableError()

    def end_break(self, break_id: int) -> BreakDto:
        raise FeatureUnavailableError()

    def _store_error(self, message: str, exc: SQLAlchemyError) -> StoreError:
        self.db.rollback()
        _log.error("%s (actor_id=%s): %s", message, self.actor_id, exc)
        return StoreError(f"{message}. Please try again.")


class SqlBranchLocationStore:
    def __init__(self, db: Session):
        self.db = db

    def fetch_by_branch_id(self, branch_id: int) -> Optional[BranchLocationInfo]:
        try:
            return branch_service.get_branch_location_info(self.db, branch_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            _log.error("Could not load branch location (branch_id=%s): %s", branch_id, exc)
            raise StoreError("Could not load your branch location. Please try again.")
