from datetime import date, timedelta

import pytest

from workout_scheduler.models import CalendarDay, CompletionRecord, Routine
from workout_scheduler.scheduler import (
    build_month_grid,
    expand_date_range,
    grid_start,
    intensity,
    month_stats,
    resolve,
    schedule_matches,
    shift_month,
    sunday_weekday,
    toggle,
)


def make_routine(schedule, **overrides):
    base = {
        "id": "r1",
        "name": "Morning Strength",
        "exercises": [{"id": "e1", "name": "Push-ups", "sets": 3, "reps": 15}],
        "schedule": schedule,
        "is_active": True,
    }
    base.update(overrides)
    return Routine(**base)


def done(day, routine_id="r1", exercise_id="e1", completed=True):
    return CompletionRecord(date=day, routine_id=routine_id, exercise_id=exercise_id, completed=completed)


TUESDAY = date(2024, 3, 12)
WEDNESDAY = date(2024, 3, 13)


def test_sunday_is_weekday_zero():
    assert sunday_weekday(date(2024, 3, 10)) == 0
    assert sunday_weekday(date(2024, 3, 16)) == 6


def test_weekday_schedule_matches_only_selected_days():
    routine = make_routine({"type": "weekdays", "weekdays": [1, 3, 5]})
    assert resolve(TUESDAY, [routine], []) == []

    obligations = resolve(WEDNESDAY, [routine], [])
    assert len(obligations) == 1
    assert obligations[0].label == "Morning Strength: Push-ups"
    assert obligations[0].id == "r1-e1"
    assert obligations[0].date == "2024-03-13"
    assert obligations[0].completed is False


def test_specific_dates_match_exact_iso_string():
    routine = make_routine({"type": "specific_dates", "dates": ["2024-03-15"]})
    assert schedule_matches(routine, date(2024, 3, 15))
    assert not schedule_matches(routine, date(2024, 3, 16))

    non_canonical = make_routine({"type": "specific_dates", "dates": ["2024-3-15"]})
    assert not schedule_matches(non_canonical, date(2024, 3, 15))


def test_daily_always_matches():
    routine = make_routine({"type": "daily"})
    for offset in range(14):
        assert schedule_matches(routine, TUESDAY + timedelta(days=offset))


def test_unresolvable_rules_never_match():
    custom = make_routine({"type": "custom", "interval": 3})
    empty_weekdays = make_routine({"type": "weekdays", "weekdays": []})
    for offset in range(14):
        day = TUESDAY + timedelta(days=offset)
        assert resolve(day, [custom, empty_weekdays], []) == []


def test_inactive_routine_contributes_nothing():
    routine = make_routine({"type": "daily"}, is_active=False)
    assert resolve(WEDNESDAY, [routine], []) == []


def test_resolve_preserves_routine_then_exercise_order():
    first = make_routine(
        {"type": "daily"},
        exercises=[{"id": "a", "name": "Squats"}, {"id": "b", "name": "Plank"}],
    )
    second = make_routine({"type": "daily"}, id="r2", name="Cardio Session",
                          exercises=[{"id": "c", "name": "Running"}])
    labels = [o.label for o in resolve(WEDNESDAY, [first, second], [])]
    assert labels == ["Morning Strength: Squats", "Morning Strength: Plank", "Cardio Session: Running"]


def test_resolve_joins_completion_records():
    routine = make_routine(
        {"type": "daily"},
        exercises=[{"id": "e1", "name": "Push-ups"}, {"id": "e2", "name": "Squats"}],
    )
    completions = [
        done("2024-03-13", exercise_id="e1"),
        done("2024-03-13", exercise_id="e2", completed=False),
        done("2024-03-12", exercise_id="e2"),
    ]
    obligations = resolve(WEDNESDAY, [routine], completions)
    assert [o.completed for o in obligations] == [True, False]


def test_resolve_is_idempotent():
    routines = [make_routine({"type": "weekdays", "weekdays": [3]})]
    completions = [done("2024-03-13")]
    assert resolve(WEDNESDAY, routines, completions) == resolve(WEDNESDAY, routines, completions)


def test_toggle_first_touch_completes_then_alternates():
    ledger = []
    states = []
    for _ in range(3):
        ledger, record = toggle(ledger, WEDNESDAY, "r1", "e1")
        states.append(record.completed)
    assert states == [True, False, True]
    assert len(ledger) == 1


def test_toggle_leaves_other_records_alone():
    other = done("2024-03-12")
    ledger, record = toggle([other], WEDNESDAY, "r1", "e1")
    assert ledger[0] == other
    assert ledger[1] == record
    assert record.date == "2024-03-13"


def test_toggle_does_not_mutate_input():
    original = [done("2024-03-13")]
    toggle(original, WEDNESDAY, "r1", "e1")
    assert original[0].completed is True


@pytest.mark.parametrize("year,month", [(2024, 2), (2023, 2), (2023, 12), (2024, 1), (2024, 9), (2026, 10)])
def test_grid_has_42_contiguous_days(year, month):
    routines = [make_routine({"type": "daily"})]
    grid = build_month_grid(year, month, routines, [])
    assert len(grid) == 42
    days = [date.fromisoformat(d.date) for d in grid]
    for prev, nxt in zip(days, days[1:]):
        assert nxt - prev == timedelta(days=1)
    assert days[0].weekday() == 6  # Sunday
    assert days[0] <= date(year, month, 1) < days[0] + timedelta(days=7)


def test_grid_start_when_month_begins_on_sunday():
    assert grid_start(2024, 9) == date(2024, 9, 1)
    assert grid_start(2024, 3) == date(2024, 2, 25)


def test_grid_counts_outside_days_and_bounds_completion():
    routine = make_routine(
        {"type": "daily"},
        exercises=[{"id": "e1", "name": "Push-ups"}, {"id": "e2", "name": "Squats"}],
    )
    completions = [done("2024-02-26"), done("2024-03-01"), done("2024-03-01", exercise_id="e2")]
    grid = build_month_grid(2024, 3, [routine], completions)
    by_date = {d.date: d for d in grid}

    feb = by_date["2024-02-26"]
    assert feb.in_month is False
    assert (feb.completed_count, feb.total_count) == (1, 2)
    assert feb.intensity == 0.5

    first = by_date["2024-03-01"]
    assert first.in_month is True
    assert first.intensity == 1.0

    for d in grid:
        assert 0 <= d.completed_count <= d.total_count
        assert d.has_obligations == (d.total_count > 0)


def test_intensity_is_zero_without_obligations():
    assert intensity(0, 0) == 0.0
    assert intensity(1, 4) == 0.25


def test_month_stats_only_counts_target_month():
    routine = make_routine({"type": "daily"})
    completions = [done("2024-02-26"), done("2024-03-01"), done("2024-03-02")]
    grid = build_month_grid(2024, 3, [routine], completions)
    stats = month_stats(grid, 3)
    assert stats.perfect_days == 2
    assert stats.active_days == 2
    assert stats.completion_rate == 6  # 2 of 31


def test_month_stats_zero_obligations_rate_is_zero():
    grid = build_month_grid(2024, 3, [], [])
    stats = month_stats(grid, 3)
    assert stats.completion_rate == 0
    assert stats.perfect_days == 0
    assert stats.active_days == 0


def test_month_stats_rounds_half_up():
    days = [
        CalendarDay(date="2024-03-01", in_month=True, has_obligations=True, completed_count=1, total_count=4),
        CalendarDay(date="2024-03-02", in_month=True, has_obligations=True, completed_count=0, total_count=4),
    ]
    assert month_stats(days, 3).completion_rate == 13


def test_active_day_requires_a_completion_perfect_day_requires_all():
    days = [
        CalendarDay(date="2024-03-01", in_month=True, has_obligations=True, completed_count=1, total_count=2),
        CalendarDay(date="2024-03-02", in_month=True, has_obligations=True, completed_count=2, total_count=2),
        CalendarDay(date="2024-03-03", in_month=True, has_obligations=False, completed_count=0, total_count=0),
    ]
    stats = month_stats(days, 3)
    assert stats.perfect_days == 1
    assert stats.active_days == 2
    assert stats.completion_rate == 75


def test_shift_month_rolls_over_years():
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 6, 0) == (2024, 6)


@pytest.mark.parametrize("year,month", [(1, 1), (9999, 12)])
def test_grid_rejects_months_beyond_date_range(year, month):
    with pytest.raises(ValueError, match="42-day grid"):
        build_month_grid(year, month, [], [])


@pytest.mark.parametrize("year,month", [(1, 2), (9999, 11)])
def test_grid_at_the_edges_of_date_range(year, month):
    assert len(build_month_grid(year, month, [make_routine({"type": "daily"})], [])) == 42


def test_expand_date_range_includes_every_day():
    assert expand_date_range(date(2024, 2, 27), date(2024, 3, 2)) == [
        "2024-02-27", "2024-02-28", "2024-02-29", "2024-03-01", "2024-03-02",
    ]
    assert expand_date_range(date(2024, 3, 15)) == ["2024-03-15"]
    assert expand_date_range(date(2024, 3, 16), date(2024, 3, 15)) == ["2024-03-15", "2024-03-16"]
