"""
Rating store: one floating-point score per (user, meal).

Records are created lazily with DEFAULT_SCORE the first time a meal takes part
in a comparison. All methods run inside the caller's session so they can share
one transaction.
"""

from __future__ import annotations

import logging
from typing import List, Tuple
from uuid import uuid4

from sqlalchemy.orm import Session

from ..database import Ranking, insert_if_absent

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 1500.0


class RatingStore:
    """Get-or-default / set / remove / list access to the rankings table."""

    def get_or_default(
        self,
        session: Session,
        user_id: str,
        meal_id: str,
        lock: bool = False,
    ) -> float:
        """
        Return the stored score, inserting DEFAULT_SCORE first if none exists.

        Args:
            session: Active transaction.
            user_id: Owning user.
            meal_id: Rated meal.
            lock: Take a row lock (SELECT ... FOR UPDATE) held until commit.
        """
        created = insert_if_absent(
            session,
            Ranking,
            {"id": str(uuid4()), "user_id": user_id, "meal_id": meal_id, "score": DEFAULT_SCORE},
            conflict_columns=("user_id", "meal_id"),
        )
        if created:
            logger.debug(f"Created default rating for meal {meal_id} (user {user_id})")

        query = session.query(Ranking.score).filter(
            Ranking.user_id == user_id,
            Ranking.meal_id == meal_id,
        )
        if lock:
            query = query.with_for_update()
        return float(query.one()[0])

    def set(self, session: Session, user_id: str, meal_id: str, score: float) -> None:
        """Overwrite the stored score unconditionally."""
        updated = (
            session.query(Ranking)
            .filter(Ranking.user_id == user_id, Ranking.meal_id == meal_id)
            .update({Ranking.score: float(score)}, synchronize_session=False)
        )
        if updated == 0:
            # set() never creates records; get_or_default() is the only creation path.
            raise LookupError(f"No rating record for meal {meal_id}")

    def remove(self, session: Session, user_id: str, meal_id: str) -> bool:
        """Delete the record; returns whether one existed."""
        deleted = (
            session.query(Ranking)
            .filter(Ranking.user_id == user_id, Ranking.meal_id == meal_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    def list_for_user(self, session: Session, user_id: str) -> List[Tuple[str, float]]:
        """All (meal_id, score) pairs for a user, in no particular order."""
        rows = (
            session.query(Ranking.meal_id, Ranking.score)
            .filter(Ranking.user_id == user_id)
            .all()
        )
        return [(meal_id, float(score)) for meal_id, score in rows]
