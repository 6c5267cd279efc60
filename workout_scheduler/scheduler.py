from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (
    CalendarDay,
    CompletionRecord,
    CustomSchedule,
    DailySchedule,
    MonthStats,
    Obligation,
    Routine,
    SpecificDatesSchedule,
    WeekdaysSchedule,
)

logger = logging.getLogger(__name__)

GRID_DAYS = 42

CompletionKey = Tuple[str, str, str]


def sunday_weekday(day: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def schedule_matches(routine: Routine, day: date) -> bool:
    """Whether the routine's recurrence rule applies to ``day``.

    Rules that cannot be resolved (a ``custom`` interval, a weekday set left
    empty) never match.
    """
    rule = routine.schedule
    if isinstance(rule, DailySchedule):
        return True
    if isinstance(rule, WeekdaysSchedule):
        if not rule.weekdays:
            logger.debug("Routine %s has an empty weekday set", routine.id)
            return False
        return sunday_weekday(day) in rule.weekdays
    if isinstance(rule, SpecificDatesSchedule):
        return day.isoformat() in rule.dates
    if isinstance(rule, CustomSchedule):
        logger.debug("Routine %s uses a custom interval schedule, which is never resolved", routine.id)
        return False
    return False


def index_completions(completions: Iterable[CompletionRecord]) -> Dict[CompletionKey, bool]:
    return {c.key(): c.completed for c in completions}


def resolve(
    day: date,
    routines: Iterable[Routine],
    completions: Iterable[CompletionRecord],
    _index: Optional[Dict[CompletionKey, bool]] = None,
) -> List[Obligation]:
    """Obligations due on ``day``, in routine order then exercise order."""
    done = _index if _index is not None else index_completions(completions)
    day_str = day.isoformat()
    obligations: List[Obligation] = []
    for routine in routines:
        if not routine.is_active or not schedule_matches(routine, day):
            continue
        for exercise in routine.exercises:
            obligations.append(
                Obligation(
                    id=f"{routine.id}-{exercise.id}",
                    routine_id=routine.id,
                    exercise_id=exercise.id,
                    label=f"{routine.name}: {exercise.name}",
                    completed=done.get((day_str, routine.id, exercise.id), False),
                    date=day_str,
                )
            )
    return obligations


def toggle(
    completions: List[CompletionRecord], day: date, routine_id: str, exercise_id: str
) -> Tuple[List[CompletionRecord], CompletionRecord]:
    """Flip the completion state of one obligation.

    Returns a new ledger and the affected record. An obligation with no record
    yet becomes completed on first toggle.
    """
    key = (day.isoformat(), routine_id, exercise_id)
    updated: List[CompletionRecord] = []
    record: Optional[CompletionRecord] = None
    for c in completions:
        if c.key() == key:
            record = c.model_copy(update={"completed": not c.completed})
            updated.append(record)
        else:
            updated.append(c)
    if record is None:
        record = CompletionRecord(date=key[0], routine_id=routine_id, exercise_id=exercise_id, completed=True)
        updated.append(record)
    return updated, record


def intensity(completed_count: int, total_count: int) -> float:
    if total_count <= 0:
        return 0.0
    return completed_count / total_count


def grid_start(year: int, month: int) -> date:
    """Sunday on or before the 1st of the month.

    Raises ValueError when the six weeks would fall outside the dates
    ``datetime.date`` can hold; only January of year 1 and December of
    year 9999 do.
    """
    first = date(year, month, 1)
    start = first.toordinal() - sunday_weekday(first)
    if start < date.min.toordinal() or start + GRID_DAYS - 1 > date.max.toordinal():
        raise ValueError(
            f"No {GRID_DAYS}-day grid for {year}-{month:02d}: it would leave the range {date.min} to {date.max}"
        )
    return date.fromordinal(start)


def build_month_grid(
    year: int,
    month: int,
    routines: Iterable[Routine],
    completions: Iterable[CompletionRecord],
) -> List[CalendarDay]:
    """Six full weeks starting on the Sunday on or before the 1st of the month.

    Days outside the month are kept and counted like any other day.
    Defined for every month from February of year 1 to November of year 9999;
    the two edge months raise ValueError (see ``grid_start``).
    """
    routines = list(routines)
    done = index_completions(completions)
    start = grid_start(year, month)
    days: List[CalendarDay] = []
    for offset in range(GRID_DAYS):
        current = start + timedelta(days=offset)
        obligations = resolve(current, routines, (), _index=done)
        total = len(obligations)
        completed = sum(1 for o in obligations if o.completed)
        days.append(
            CalendarDay(
                date=current.isoformat(),
                in_month=current.month == month,
                has_obligations=total > 0,
                completed_count=completed,
                total_count=total,
                intensity=intensity(completed, total),
                obligations=obligations,
            )
        )
    return days


def month_stats(days: Iterable[CalendarDay], month: int) -> MonthStats:
    """Perfect days, active days and completion rate for the days of ``month``."""
    perfect = 0
    active = 0
    completed_sum = 0
    total_sum = 0
    for d in days:
        if date.fromisoformat(d.date).month != month:
            continue
        if d.total_count > 0 and d.completed_count == d.total_count:
            perfect += 1
        if d.completed_count > 0:
            active += 1
        completed_sum += d.completed_count
        total_sum += d.total_count
    # half-up rounding, 12.5% reads as 13%
    rate = int(math.floor(completed_sum / total_sum * 100 + 0.5)) if total_sum else 0
    return MonthStats(perfect_days=perfect, active_days=active, completion_rate=rate)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move ``delta`` months forward (or back), rolling over year boundaries."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def expand_date_range(start: date, end: Optional[date] = None) -> List[str]:
    """Every ISO date from ``start`` to ``end`` inclusive, in order."""
    if end is None:
        end = start
    if end < start:
        start, end = end, start
    return [(start + timedelta(days=i)).isoformat() for i in range((end - start).days + 1)]
