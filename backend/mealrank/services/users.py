"""
User rows and the profile read model.

Users are keyed by the auth subject and created on first use with an empty
streak. Streak fields are read-only here; only the meal insert flow writes them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func as sqlfunc
from sqlalchemy.orm import Session

from ..database import Database, Meal as MealORM, User, insert_if_absent
from .models import ProfileStats, ProfileUpdate, UserProfile

if TYPE_CHECKING:
    from .leaderboard import Leaderboard

logger = logging.getLogger(__name__)

TOP_RANKED_LIMIT = 5


class UserStorage:
    def __init__(self, db: Database, leaderboard: Optional["Leaderboard"] = None):
        self._db = db
        self._leaderboard = leaderboard

    def ensure_user(self, session: Session, user_id: str, email: Optional[str] = None) -> bool:
        """
        Create the user row with streak (0, 0, None) unless it already exists.

        Returns:
            True if the row was created by this call.
        """
        created = insert_if_absent(
            session,
            User,
            {
                "id": user_id,
                "email": email,
                "current_streak": 0,
                "longest_streak": 0,
                "last_meal_date": None,
            },
            conflict_columns=("id",),
        )
        if created:
            logger.info(f"Created user {user_id}")
        return created

    def get_profile(self, user_id: str) -> UserProfile:
        """
        Profile with meal stats and streak state.

        A user that has never logged anything gets an empty profile.
        """
        with self._db.session_scope() as session:
            self.ensure_user(session, user_id)
            user = session.get(User, user_id, populate_existing=True)

            total, average = (
                session.query(sqlfunc.count(MealORM.id), sqlfunc.avg(MealORM.overall_rating))
                .filter(MealORM.user_id == user_id)
                .one()
            )

            top_ranked = []
            if self._leaderboard is not None:
                top_ranked = self._leaderboard.ranked_in_session(
                    session, user_id, limit=TOP_RANKED_LIMIT
                )

            return UserProfile(
                id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                profile_photo_url=user.profile_photo_url,
                created_at=user.created_at,
                stats=ProfileStats(
                    total_meals=int(total or 0),
                    average_rating=round(float(average or 0.0), 2),
                    top_ranked_meals=top_ranked,
                    current_streak=user.current_streak or 0,
                    longest_streak=user.longest_streak or 0,
                    last_meal_date=user.last_meal_date,
                ),
            )

    def update_profile(self, user_id: str, payload: ProfileUpdate) -> UserProfile:
        with self._db.session_scope() as session:
            self.ensure_user(session, user_id)
            user = session.get(User, user_id, populate_existing=True)

            if payload.first_name is not None:
                user.first_name = payload.first_name
            if payload.last_name is not None:
                user.last_name = payload.last_name
            if payload.email is not None:
                user.email = payload.email
            if payload.clear_photo:
                user.profile_photo_url = None
            elif payload.profile_photo_url is not None:
                user.profile_photo_url = payload.profile_photo_url

        logger.info(f"Profile updated for user {user_id}")
        return self.get_profile(user_id)
