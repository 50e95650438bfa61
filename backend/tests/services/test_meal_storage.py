"""
Tests for meal storage: CRUD, cascade to ratings, and the streak update that
rides along with every meal insert.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path

import pytest

from mealrank.database import Ranking, User
from mealrank.services.container import Services, create_services
from mealrank.services.models import IngredientInput, MealCreate, MealUpdate
from mealrank.services.streaks import StreakTracker


@pytest.fixture()
def services(tmp_path: Path) -> Services:
    svc = create_services(db_path=tmp_path / "meals_test.db")
    yield svc
    svc.db.dispose()


def _log(svc: Services, user_id: str, day: str, title: str = "Dinner", **kwargs):
    return svc.meals.create_meal(
        user_id, MealCreate(title=title, date_made=day, overall_rating=3, **kwargs)
    )


def _streak(svc: Services, user_id: str):
    with svc.db.session_scope() as session:
        user = session.get(User, user_id)
        return user.current_streak, user.longest_streak, user.last_meal_date


# ============================================================================
# create / read
# ============================================================================


def test_create_meal_persists_tags_and_ingredients(services):
    meal = _log(
        services,
        "user-a",
        "2024-01-01",
        title="Pad Thai",
        tags=["thai", " noodles ", "thai"],
        ingredients=[
            IngredientInput(name="rice noodles", quantity=200, unit="g", calories=720),
            IngredientInput(name="egg", quantity=2),
        ],
    )

    loaded = services.meals.get_meal("user-a", meal.id)

    assert loaded.title == "Pad Thai"
    assert loaded.tags == ["noodles", "thai"]
    assert [i.name for i in loaded.ingredients] == ["egg", "rice noodles"]
    assert loaded.ingredients[1].calories == 720


def test_get_meal_is_user_scoped(services):
    meal = _log(services, "user-a", "2024-01-01")
    assert services.meals.get_meal("user-b", meal.id) is None


def test_list_meals_newest_first(services):
    _log(services, "user-a", "2024-01-01", title="Old")
    _log(services, "user-a", "2024-01-05", title="New")
    _log(services, "user-b", "2024-01-03", title="Someone else")

    titles = [m.title for m in services.meals.list_meals("user-a")]

    assert titles == ["New", "Old"]


def test_meal_date_timestamp_is_reduced_to_utc_day(services):
    meal = _log(services, "user-a", "2024-01-01T22:00:00-05:00")
    assert meal.date_made == date(2024, 1, 2)


# ============================================================================
# streak integration
# ============================================================================


def test_first_meal_creates_user_with_streak_one(services):
    _log(services, "user-a", "2024-01-01")
    assert _streak(services, "user-a") == (1, 1, date(2024, 1, 1))


def test_streak_progression_through_meal_inserts(services):
    seen = []
    for day in ["2024-01-01", "2024-01-02", "2024-01-02", "2024-01-04"]:
        _log(services, "user-a", day)
        seen.append(_streak(services, "user-a")[:2])

    assert seen == [(1, 1), (2, 2), (2, 2), (1, 2)]

    _log(services, "user-a", "2023-12-31")
    assert _streak(services, "user-a") == (1, 2, date(2024, 1, 4))


def test_streaks_are_independent_per_user(services):
    _log(services, "user-a", "2024-01-01")
    _log(services, "user-a", "2024-01-02")
    _log(services, "user-b", "2024-01-02")

    assert _streak(services, "user-a")[:2] == (2, 2)
    assert _streak(services, "user-b")[:2] == (1, 1)


def test_concurrent_meal_inserts_serialize_on_streak(services):
    _log(services, "user-a", "2024-01-01")

    def log_next_day(i):
        return _log(services, "user-a", "2024-01-02", title=f"Meal {i}")

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(log_next_day, range(30)))

    current, longest, last = _streak(services, "user-a")
    assert len(created) == 30
    assert len(services.meals.list_meals("user-a")) == 31
    assert (current, longest, last) == (2, 2, date(2024, 1, 2))
    assert longest >= current


def test_failed_streak_update_rolls_back_meal_insert(services, monkeypatch):
    _log(services, "user-a", "2024-01-01")

    def boom(self, session, user_id, meal_date):
        raise RuntimeError("lock wait timeout")

    monkeypatch.setattr(StreakTracker, "apply", boom)

    with pytest.raises(RuntimeError):
        _log(services, "user-a", "2024-01-02", title="Lost")

    assert [m.title for m in services.meals.list_meals("user-a")] == ["Dinner"]
    assert _streak(services, "user-a") == (1, 1, date(2024, 1, 1))


def test_update_meal_never_touches_streak(services):
    meal = _log(services, "user-a", "2024-01-01")

    updated = services.meals.update_meal(
        "user-a", meal.id, MealUpdate(title="Renamed", date_made="2024-01-02", tags=["x"])
    )

    assert updated.title == "Renamed"
    assert updated.date_made == date(2024, 1, 2)
    assert updated.tags == ["x"]
    assert _streak(services, "user-a") == (1, 1, date(2024, 1, 1))


def test_update_missing_meal_returns_none(services):
    assert services.meals.update_meal("user-a", "nope", MealUpdate(title="x")) is None


# ============================================================================
# delete
# ============================================================================


def test_delete_meal_cascades_to_rating(services):
    a = _log(services, "user-a", "2024-01-01").id
    b = _log(services, "user-a", "2024-01-01").id
    services.comparisons.record_comparison("user-a", a, b, "win")

    assert services.meals.delete_meal("user-a", a) is True

    with services.db.session_scope() as session:
        assert session.query(Ranking).filter(Ranking.meal_id == a).count() == 0
    assert [r.meal_id for r in services.leaderboard.get_ranked("user-a")] == [b]


def test_delete_meal_owned_by_someone_else_is_refused(services):
    meal = _log(services, "user-a", "2024-01-01")

    assert services.meals.delete_meal("user-b", meal.id) is False
    assert services.meals.get_meal("user-a", meal.id) is not None


def test_meal_belongs_to_user(services):
    meal = _log(services, "user-a", "2024-01-01")

    assert services.meals.meal_belongs_to_user(meal.id, "user-a") is True
    assert services.meals.meal_belongs_to_user(meal.id, "user-b") is False


# ============================================================================
# profile
# ============================================================================


def test_profile_reports_stats_and_streak(services):
    a = _log(services, "user-a", "2024-01-01", title="A").id
    b = services.meals.create_meal(
        "user-a", MealCreate(title="B", date_made="2024-01-02", overall_rating=4)
    ).id
    services.comparisons.record_comparison("user-a", b, a, "win")

    profile = services.users.get_profile("user-a")

    assert profile.stats.total_meals == 2
    assert profile.stats.average_rating == 3.5
    assert [m.meal_id for m in profile.stats.top_ranked_meals] == [b, a]
    assert (profile.stats.current_streak, profile.stats.longest_streak) == (2, 2)
    assert profile.stats.last_meal_date == date(2024, 1, 2)


def test_profile_for_new_user_is_empty(services):
    profile = services.users.get_profile("brand-new")

    assert profile.id == "brand-new"
    assert profile.stats.total_meals == 0
    assert profile.stats.current_streak == 0
    assert profile.stats.last_meal_date is None
