"""
Pairwise comparison engine.

Applies a flat K-factor shift to two meals' ratings. The shift is not weighted
by expected score; a win always moves both ratings by exactly K_FACTOR.
"""

from __future__ import annotations

import logging
from typing import Tuple, Union

from ..database import Database
from ..errors import InvalidOutcome, NotFoundOrForbidden
from .meals import MealStorage
from .models import Outcome
from .ratings import RatingStore

logger = logging.getLogger(__name__)

K_FACTOR = 32


def parse_outcome(value: Union[str, Outcome, None]) -> Outcome:
    """Coerce a raw outcome tag, raising InvalidOutcome for anything else."""
    if isinstance(value, Outcome):
        return value
    try:
        return Outcome(value)
    except ValueError:
        raise InvalidOutcome(
            f"Invalid comparison type {value!r}; expected one of win, lose, tie"
        ) from None


def apply_outcome(first: float, second: float, outcome: Outcome) -> Tuple[float, float]:
    """New (first, second) scores after `first` wins, loses or ties against `second`."""
    if outcome is Outcome.WIN:
        return first + K_FACTOR, second - K_FACTOR
    if outcome is Outcome.LOSE:
        return first - K_FACTOR, second + K_FACTOR
    return first, second


class ComparisonEngine:
    """
    Records "A vs B" outcomes for a user's meals.

    Each call runs in one transaction: ownership check, get-or-default of both
    ratings under row locks, and both writes commit or roll back together.
    """

    def __init__(self, db: Database, ratings: RatingStore, meals: MealStorage):
        self._db = db
        self._ratings = ratings
        self._meals = meals

    def record_comparison(
        self,
        user_id: str,
        winner_meal_id: str,
        loser_meal_id: str,
        outcome: Union[str, Outcome],
    ) -> Tuple[float, float]:
        """
        Apply one comparison outcome.

        Args:
            user_id: Acting user; both meals must belong to them.
            winner_meal_id: Meal in the "winner" slot.
            loser_meal_id: Meal in the "loser" slot.
            outcome: win, lose (the winner slot actually lost) or tie.

        Returns:
            The new (winner, loser) scores.

        Raises:
            InvalidOutcome: bad outcome tag or a meal compared with itself.
            NotFoundOrForbidden: either meal is missing or owned by someone else.
            TransientPersistenceFailure: the transaction was rolled back.
        """
        result = parse_outcome(outcome)
        if not winner_meal_id or not loser_meal_id:
            raise InvalidOutcome("Both winnerId and loserId are required")
        if winner_meal_id == loser_meal_id:
            raise InvalidOutcome("A meal cannot be compared with itself")

        with self._db.session_scope() as session:
            owned = self._meals.meals_owned_by(session, user_id, [winner_meal_id, loser_meal_id])
            if owned != {winner_meal_id, loser_meal_id}:
                logger.warning(
                    f"Rejected comparison for user {user_id}: "
                    f"meals {winner_meal_id}, {loser_meal_id} not found or not owned"
                )
                raise NotFoundOrForbidden(
                    "One or both meals not found or not authorized for this user."
                )

            # Lock in meal id order so two comparisons over the same pair
            # in opposite slots cannot deadlock.
            scores = {}
            for meal_id in sorted((winner_meal_id, loser_meal_id)):
                scores[meal_id] = self._ratings.get_or_default(session, user_id, meal_id, lock=True)

            new_winner, new_loser = apply_outcome(
                scores[winner_meal_id], scores[loser_meal_id], result
            )
            self._ratings.set(session, user_id, winner_meal_id, new_winner)
            self._ratings.set(session, user_id, loser_meal_id, new_loser)

        logger.info(
            f"Comparison recorded for user {user_id}: {winner_meal_id} {result.value} "
            f"{loser_meal_id} ({scores[winner_meal_id]} -> {new_winner}, "
            f"{scores[loser_meal_id]} -> {new_loser})"
        )
        return new_winner, new_loser

    def remove_rating(self, user_id: str, meal_id: str) -> bool:
        """
        Drop a meal from the user's rankings without deleting the meal.

        Returns:
            False if the meal had no rating record.
        """
        with self._db.session_scope() as session:
            removed = self._ratings.remove(session, user_id, meal_id)

        if removed:
            logger.info(f"Removed rating for meal {meal_id} (user {user_id})")
        return removed
