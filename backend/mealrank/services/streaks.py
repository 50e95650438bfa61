"""
Consecutive-day cooking streaks.

`apply_meal` is a pure function of the stored state and the new meal's date;
`StreakTracker` wraps it in a locked read-modify-write on the user row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..database import User
from ..errors import NotFound

logger = logging.getLogger(__name__)

MealDate = Union[date, datetime, str]


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_meal_date: Optional[date] = None


def normalize_meal_date(value: MealDate) -> date:
    """
    Reduce a meal timestamp to its UTC calendar date.

    Naive datetimes are taken to already be in UTC. Strings are parsed as ISO 8601.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("meal date must not be empty")
        if "T" not in text and " " not in text:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()

    if isinstance(value, date):
        return value

    raise ValueError("meal date must be a date, datetime or ISO string")


def apply_meal(state: StreakState, meal_date: MealDate) -> StreakState:
    """
    Compute the streak state after logging a meal on `meal_date`.

    Backdated meals (older than the last logged day) leave the state untouched.
    """
    day = normalize_meal_date(meal_date)
    current = state.current_streak
    last = state.last_meal_date

    if last is None:
        current, last = 1, day
    else:
        diff_days = (day - last).days
        if diff_days == 1:
            current, last = current + 1, day
        elif diff_days == 0:
            last = day
        elif diff_days > 1:
            current, last = 1, day
        # diff_days < 0: keep both

    return StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_meal_date=last,
    )


class StreakTracker:
    """Applies streak updates to the user row inside the caller's transaction."""

    def apply(self, session: Session, user_id: str, meal_date: MealDate) -> StreakState:
        """
        Lock the user's streak row, apply the meal, and write the result back.

        Must be called inside the same transaction as the meal insert.
        """
        user = (
            session.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if user is None:
            raise NotFound(f"User {user_id} not found")

        before = StreakState(
            current_streak=user.current_streak or 0,
            longest_streak=user.longest_streak or 0,
            last_meal_date=user.last_meal_date,
        )
        after = apply_meal(before, meal_date)

        user.current_streak = after.current_streak
        user.longest_streak = after.longest_streak
        user.last_meal_date = after.last_meal_date
        session.flush()

        if after != before:
            logger.info(
                f"Streak for user {user_id}: "
                f"({before.current_streak}, {before.longest_streak}) -> "
                f"({after.current_streak}, {after.longest_streak})"
            )
        return after
