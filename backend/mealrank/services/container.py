"""
Dependency injection container for backend services.

We store a single Services instance on the Flask app (app.extensions["services"]).
Routes can then fetch dependencies via get_services() which makes route tests able
to inject their own database without importing/initializing global singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import current_app

from ..database import Database
from .comparisons import ComparisonEngine
from .leaderboard import Leaderboard
from .meals import MealStorage
from .ratings import RatingStore
from .streaks import StreakTracker
from .users import UserStorage


@dataclass(frozen=True)
class Services:
    db: Database
    ratings: RatingStore
    comparisons: ComparisonEngine
    leaderboard: Leaderboard
    meals: MealStorage
    users: UserStorage


def create_services(
    *,
    database_url: Optional[str] = None,
    db_path: Optional[Path] = None,
) -> Services:
    """
    Build the production Services container.

    Args:
        database_url: Optional override for database URL.
        db_path: Optional SQLite file (useful for tests).
    """
    db = Database(db_path=db_path, database_url=database_url)
    ratings = RatingStore()
    leaderboard = Leaderboard(db)
    users = UserStorage(db, leaderboard)
    meals = MealStorage(db, users, StreakTracker())
    return Services(
        db=db,
        ratings=ratings,
        comparisons=ComparisonEngine(db, ratings, meals),
        leaderboard=leaderboard,
        meals=meals,
        users=users,
    )


def get_services() -> Services:
    """
    Fetch the Services container from the current Flask app.

    Raises:
        RuntimeError if services have not been attached to the app.
    """
    services = current_app.extensions.get("services")
    if services is None:
        raise RuntimeError('Services not configured. Expected app.extensions["services"].')
    return services
