"""
Leaderboard projection over a user's rating records.

Rank positions are dense (1..N) and recomputed on every read.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..database import Database, Meal as MealORM, Ranking as RankingORM
from .meals import tags_for_meals
from .models import RankedMeal


def assign_positions(scores: Dict[str, float]) -> List[Tuple[str, float, int]]:
    """
    Sort (meal_id, score) by score descending and number them from 1.

    Equal scores fall back to meal id ascending so the order is deterministic.
    """
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [(meal_id, score, index + 1) for index, (meal_id, score) in enumerate(ordered)]


class Leaderboard:
    def __init__(self, db: Database):
        self._db = db

    def get_ranked(
        self,
        user_id: str,
        meal_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[RankedMeal]:
        """
        Ranked meals for a user, best first.

        With `meal_id`, returns just that meal with its position in the full
        ordering (empty list if the meal has no rating record).
        """
        with self._db.session_scope() as session:
            return self.ranked_in_session(session, user_id, meal_id=meal_id, limit=limit)

    def ranked_in_session(
        self,
        session: Session,
        user_id: str,
        meal_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[RankedMeal]:
        rows = (
            session.query(RankingORM.score, MealORM)
            .join(MealORM, MealORM.id == RankingORM.meal_id)
            .filter(RankingORM.user_id == user_id, MealORM.user_id == user_id)
            .all()
        )
        meals = {meal.id: meal for _, meal in rows}
        positioned = assign_positions({meal.id: float(score) for score, meal in rows})

        if meal_id is not None:
            positioned = [row for row in positioned if row[0] == meal_id]
        if limit is not None:
            positioned = positioned[: max(limit, 0)]

        tags = tags_for_meals(session, [row[0] for row in positioned])
        return [
            RankedMeal(
                meal_id=mid,
                score=score,
                rank_position=position,
                title=meals[mid].title,
                description=meals[mid].description,
                photo_url=meals[mid].photo_url,
                overall_rating=meals[mid].overall_rating,
                date_made=meals[mid].date_made,
                tags=tags.get(mid, []),
            )
            for mid, score, position in positioned
        ]

