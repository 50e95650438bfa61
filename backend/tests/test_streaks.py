"""
Tests for the cooking streak rules in mealrank/services/streaks.py.

The rules are a pure function of (stored state, meal date), so no database here.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from mealrank.services.streaks import StreakState, apply_meal, normalize_meal_date


def _run(dates, state: StreakState | None = None):
    state = state or StreakState()
    history = []
    for d in dates:
        state = apply_meal(state, d)
        history.append(state)
    return state, history


# ============================================================================
# normalize_meal_date
# ============================================================================


def test_normalize_accepts_plain_date():
    assert normalize_meal_date(date(2024, 1, 1)) == date(2024, 1, 1)


def test_normalize_parses_iso_date_string():
    assert normalize_meal_date("2024-03-09") == date(2024, 3, 9)


def test_normalize_drops_time_of_day():
    assert normalize_meal_date(datetime(2024, 1, 1, 23, 59, 59)) == date(2024, 1, 1)


def test_normalize_converts_aware_datetime_to_utc_day():
    """21:30 at UTC-5 is already the next day in UTC."""
    eastern = timezone(timedelta(hours=-5))
    assert normalize_meal_date(datetime(2024, 1, 1, 21, 30, tzinfo=eastern)) == date(2024, 1, 2)


def test_normalize_parses_iso_timestamp_with_zulu_suffix():
    assert normalize_meal_date("2024-01-01T08:15:00Z") == date(2024, 1, 1)


@pytest.mark.parametrize("value", ["", "yesterday", 12345])
def test_normalize_rejects_garbage(value):
    with pytest.raises(ValueError):
        normalize_meal_date(value)


# ============================================================================
# apply_meal
# ============================================================================


def test_first_meal_starts_streak_at_one():
    state = apply_meal(StreakState(), date(2024, 1, 1))
    assert state == StreakState(1, 1, date(2024, 1, 1))


def test_documented_progression():
    """Consecutive, repeat, then a gap."""
    final, history = _run(["2024-01-01", "2024-01-02", "2024-01-02", "2024-01-04"])

    assert [(s.current_streak, s.longest_streak) for s in history] == [
        (1, 1),
        (2, 2),
        (2, 2),
        (1, 2),
    ]
    assert final.last_meal_date == date(2024, 1, 4)


def test_backdated_meal_changes_nothing():
    final, _ = _run(["2024-01-01", "2024-01-02", "2024-01-02", "2024-01-04"])

    after = apply_meal(final, "2023-12-31")

    assert after == final
    assert after.last_meal_date == date(2024, 1, 4)


def test_same_day_repeat_keeps_current():
    state = StreakState(current_streak=3, longest_streak=5, last_meal_date=date(2024, 2, 10))
    assert apply_meal(state, date(2024, 2, 10)) == state


def test_gap_resets_current_but_keeps_longest():
    state = StreakState(current_streak=4, longest_streak=4, last_meal_date=date(2024, 2, 10))
    after = apply_meal(state, date(2024, 2, 20))
    assert after == StreakState(1, 4, date(2024, 2, 20))


def test_extending_past_longest_raises_longest():
    state = StreakState(current_streak=2, longest_streak=2, last_meal_date=date(2024, 5, 1))
    after = apply_meal(state, date(2024, 5, 2))
    assert (after.current_streak, after.longest_streak) == (3, 3)


def test_streak_crosses_month_and_year_boundaries():
    final, _ = _run(["2023-12-30", "2023-12-31", "2024-01-01", "2024-01-02"])
    assert (final.current_streak, final.longest_streak) == (4, 4)


def test_longest_is_never_below_current():
    dates = ["2024-01-01", "2024-01-02", "2024-01-05", "2024-01-06", "2024-01-07",
             "2024-01-07", "2023-06-01", "2024-01-08", "2024-02-01"]
    _, history = _run(dates)
    assert all(s.longest_streak >= s.current_streak >= 0 for s in history)


def test_apply_meal_is_deterministic():
    state = StreakState(current_streak=2, longest_streak=7, last_meal_date=date(2024, 3, 3))
    assert apply_meal(state, "2024-03-04") == apply_meal(state, "2024-03-04")
