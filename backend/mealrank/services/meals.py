"""
SQLAlchemy-backed storage for journal meals.

Every query is scoped by user id. Creating a meal also advances the user's
cooking streak inside the same transaction.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..database import (
    Database,
    Meal as MealORM,
    MealIngredient as MealIngredientORM,
    MealTag as MealTagORM,
    Ranking as RankingORM,
)
from .models import Ingredient, IngredientInput, Meal, MealCreate, MealUpdate
from .streaks import StreakTracker
from .users import UserStorage

logger = logging.getLogger(__name__)


def _ingredient_to_dto(row: MealIngredientORM) -> Ingredient:
    return Ingredient(
        id=row.id,
        name=row.name,
        quantity=row.quantity,
        unit=row.unit,
        calories=row.calories,
        protein=row.protein,
        carbs=row.carbs,
        fat=row.fat,
    )


def tags_for_meals(session: Session, meal_ids: List[str]) -> Dict[str, List[str]]:
    """Tag names per meal id, alphabetical."""
    if not meal_ids:
        return {}
    rows = (
        session.query(MealTagORM.meal_id, MealTagORM.tag_name)
        .filter(MealTagORM.meal_id.in_(meal_ids))
        .order_by(MealTagORM.tag_name)
        .all()
    )
    tags: Dict[str, List[str]] = defaultdict(list)
    for mid, name in rows:
        tags[mid].append(name)
    return tags


class MealStorage:
    """
    Meal CRUD plus the ownership check used by the comparison engine.
    """

    def __init__(self, db: Database, users: UserStorage, streaks: StreakTracker):
        self._db = db
        self._users = users
        self._streaks = streaks

    def create_meal(self, user_id: str, payload: MealCreate) -> Meal:
        """
        Insert a meal with its tags and ingredients and update the streak.

        The user row is created on first use; the streak update locks it so
        concurrent inserts for the same user serialize.
        """
        meal_id = str(uuid4())
        now = datetime.utcnow()

        with self._db.session_scope() as session:
            self._users.ensure_user(session, user_id)

            session.add(
                MealORM(
                    id=meal_id,
                    user_id=user_id,
                    title=payload.title,
                    description=payload.description,
                    date_made=payload.date_made,
                    photo_url=payload.photo_url,
                    overall_rating=payload.overall_rating,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.flush()
            self._write_tags(session, meal_id, payload.tags)
            self._write_ingredients(session, meal_id, payload.ingredients)

            self._streaks.apply(session, user_id, payload.date_made)

            meal = self._load(session, user_id, meal_id)

        logger.info(f"Meal {meal_id} created for user {user_id} ({payload.date_made.isoformat()})")
        return meal

    def list_meals(self, user_id: str) -> List[Meal]:
        with self._db.session_scope() as session:
            rows = (
                session.query(MealORM)
                .filter(MealORM.user_id == user_id)
                .order_by(desc(MealORM.date_made), desc(MealORM.created_at))
                .all()
            )
            ids = [row.id for row in rows]
            tags = tags_for_meals(session, ids)
            return [self._to_dto(row, tags.get(row.id, []), []) for row in rows]

    def get_meal(self, user_id: str, meal_id: str) -> Optional[Meal]:
        with self._db.session_scope() as session:
            return self._load(session, user_id, meal_id)

    def update_meal(self, user_id: str, meal_id: str, payload: MealUpdate) -> Optional[Meal]:
        """Apply a partial update. Streak state is not touched by edits."""
        with self._db.session_scope() as session:
            meal = (
                session.query(MealORM)
                .filter(MealORM.id == meal_id, MealORM.user_id == user_id)
                .one_or_none()
            )
            if not meal:
                return None

            if payload.title is not None:
                meal.title = payload.title
            if payload.description is not None:
                meal.description = payload.description
            if payload.date_made is not None:
                meal.date_made = payload.date_made
            if payload.overall_rating is not None:
                meal.overall_rating = payload.overall_rating
            if payload.clear_photo:
                meal.photo_url = None
            elif payload.photo_url is not None:
                meal.photo_url = payload.photo_url
            meal.updated_at = datetime.utcnow()

            if payload.tags is not None:
                session.query(MealTagORM).filter(MealTagORM.meal_id == meal_id).delete(
                    synchronize_session=False
                )
                self._write_tags(session, meal_id, payload.tags)
            if payload.ingredients is not None:
                session.query(MealIngredientORM).filter(
                    MealIngredientORM.meal_id == meal_id
                ).delete(synchronize_session=False)
                self._write_ingredients(session, meal_id, payload.ingredients)

            session.flush()
            return self._load(session, user_id, meal_id)

    def delete_meal(self, user_id: str, meal_id: str) -> bool:
        """Delete a meal and everything hanging off it, including its rating."""
        with self._db.session_scope() as session:
            owned = self.meals_owned_by(session, user_id, [meal_id])
            if not owned:
                return False
            session.query(RankingORM).filter(
                RankingORM.user_id == user_id,
                RankingORM.meal_id == meal_id,
            ).delete(synchronize_session=False)
            session.query(MealTagORM).filter(MealTagORM.meal_id == meal_id).delete(
                synchronize_session=False
            )
            session.query(MealIngredientORM).filter(
                MealIngredientORM.meal_id == meal_id
            ).delete(synchronize_session=False)
            session.query(MealORM).filter(
                MealORM.id == meal_id, MealORM.user_id == user_id
            ).delete(synchronize_session=False)

        logger.info(f"Meal {meal_id} deleted for user {user_id}")
        return True

    def meals_owned_by(self, session: Session, user_id: str, meal_ids: Iterable[str]) -> Set[str]:
        """Subset of `meal_ids` that exist and belong to `user_id`."""
        ids = list(meal_ids)
        if not ids:
            return set()
        rows = (
            session.query(MealORM.id)
            .filter(MealORM.user_id == user_id, MealORM.id.in_(ids))
            .all()
        )
        return {row[0] for row in rows}

    def meal_belongs_to_user(self, meal_id: str, user_id: str) -> bool:
        with self._db.session_scope() as session:
            return bool(self.meals_owned_by(session, user_id, [meal_id]))

    def _write_tags(self, session: Session, meal_id: str, tags: List[str]) -> None:
        for name in tags:
            session.add(MealTagORM(id=str(uuid4()), meal_id=meal_id, tag_name=name))

    def _write_ingredients(
        self, session: Session, meal_id: str, ingredients: List[IngredientInput]
    ) -> None:
        for item in ingredients:
            session.add(
                MealIngredientORM(
                    id=str(uuid4()),
                    meal_id=meal_id,
                    **item.model_dump(),
                )
            )

    def _load(self, session: Session, user_id: str, meal_id: str) -> Optional[Meal]:
        row = (
            session.query(MealORM)
            .filter(MealORM.id == meal_id, MealORM.user_id == user_id)
            .one_or_none()
        )
        if not row:
            return None
        tags = tags_for_meals(session, [meal_id]).get(meal_id, [])
        ingredients = (
            session.query(MealIngredientORM)
            .filter(MealIngredientORM.meal_id == meal_id)
            .order_by(MealIngredientORM.name)
            .all()
        )
        return self._to_dto(row, tags, [_ingredient_to_dto(i) for i in ingredients])

    @staticmethod
    def _to_dto(row: MealORM, tags: List[str], ingredients: List[Ingredient]) -> Meal:
        return Meal(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            date_made=row.date_made,
            photo_url=row.photo_url,
            overall_rating=row.overall_rating,
            tags=tags,
            ingredients=ingredients,
            created_at=row.created_at,
        )
