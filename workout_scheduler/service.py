from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .models import (
    CompletionRecord,
    DaySchedule,
    MonthCalendar,
    Routine,
    RoutineCreate,
    RoutineExercise,
    ToggleResponse,
)
from .scheduler import build_month_grid, month_stats, resolve, toggle
from .store import CompletionStore, JsonStore, RoutineStore, StorageError, StoreConfig, new_id

logger = logging.getLogger(__name__)


class CalendarService:
    """Holds the loaded routines and completion ledger and persists toggles.

    All date arithmetic is delegated to the pure functions in ``scheduler``;
    this class only moves collections between storage and memory.
    """

    def __init__(self, routine_store: RoutineStore, completion_store: CompletionStore) -> None:
        self.routine_store = routine_store
        self.completion_store = completion_store
        self.routines: List[Routine] = []
        self.completions: List[CompletionRecord] = []
        self.load_errors: List[str] = []
        self.loaded = False

    @classmethod
    def from_config(cls, cfg: Optional[StoreConfig] = None) -> "CalendarService":
        store = JsonStore(cfg)
        return cls(RoutineStore(store), CompletionStore(store))

    def load_all(self) -> None:
        """Load both collections, falling back to empty ones on failure."""
        errors: List[str] = []
        try:
            self.routines = self.routine_store.get_all()
        except StorageError as e:
            logger.error("Failed to load workout routines: %s", e)
            errors.append(f"Failed to load workout routines: {e}")
            self.routines = []
        try:
            self.completions = self.completion_store.get_all()
        except StorageError as e:
            logger.error("Failed to load workout completions: %s", e)
            errors.append(f"Failed to load workout completions: {e}")
            self.completions = []
        self.load_errors = errors
        self.loaded = True

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load_all()

    def _metadata(self) -> dict:
        return {"load_errors": list(self.load_errors)}

    # --- queries ---
    def day_schedule(self, day: date) -> DaySchedule:
        self.ensure_loaded()
        return DaySchedule(
            date=day.isoformat(),
            obligations=resolve(day, self.routines, self.completions),
            metadata=self._metadata(),
        )

    def month_calendar(self, year: int, month: int) -> MonthCalendar:
        self.ensure_loaded()
        days = build_month_grid(year, month, self.routines, self.completions)
        return MonthCalendar(
            year=year,
            month=month,
            days=days,
            stats=month_stats(days, month),
            metadata=self._metadata(),
        )

    # --- mutations ---
    def toggle(self, day: date, routine_id: str, exercise_id: str) -> ToggleResponse:
        """Flip one obligation and persist the whole ledger.

        A failed save leaves the in-memory ledger updated and re-raises
        ``StorageError``.
        """
        self.ensure_loaded()
        self.completions, record = toggle(self.completions, day, routine_id, exercise_id)
        try:
            self.completion_store.replace_all(self.completions)
        except StorageError as e:
            logger.error("Failed to save completions after toggling %s/%s on %s: %s", routine_id, exercise_id, record.date, e)
            raise
        return ToggleResponse(record=record, obligations=resolve(day, self.routines, self.completions))

    def create_routine(self, body: RoutineCreate) -> Routine:
        self.ensure_loaded()
        routine = Routine(
            id=new_id(),
            name=body.name,
            exercises=[RoutineExercise(id=new_id(), **ex.model_dump()) for ex in body.exercises],
            schedule=body.schedule,
            is_active=body.is_active,
        )
        routines = self.routines + [routine]
        self.routine_store.replace_all(routines)
        self.routines = routines
        logger.info("Created routine %s (%s)", routine.id, routine.name)
        return routine

    def delete_routine(self, routine_id: str) -> bool:
        self.ensure_loaded()
        remaining = [r for r in self.routines if r.id != routine_id]
        if len(remaining) == len(self.routines):
            return False
        self.routine_store.replace_all(remaining)
        self.routines = remaining
        logger.info("Deleted routine %s", routine_id)
        return True
