"""
REST API routes for the meal journal.

Organized into logical groups:
- Rankings: pairwise comparisons and the derived leaderboard
- Meals: CRUD for journal entries (meal creation also advances the streak)
- Users: profile with stats and streak state

All routes except /health require authentication and are user-scoped.
"""

import logging

from flask import Blueprint, request, jsonify, g
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .auth import require_auth
from .errors import MealRankError
from .services.container import get_services
from .services.models import MealCreate, MealUpdate, ProfileUpdate

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _validation_message(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts) or "Invalid request body"


@bp.errorhandler(MealRankError)
def _handle_domain_error(e: MealRankError):
    if e.status_code >= 500:
        logger.error(f"{type(e).__name__}: {e}")
    return _json_error(str(e), e.status_code)


@bp.errorhandler(ValidationError)
def _handle_validation_error(e: ValidationError):
    return _json_error(_validation_message(e), 400)


@bp.errorhandler(Exception)
def _handle_unexpected_error(e: Exception):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
    return _json_error("Internal server error", 500)


@bp.get("/health")
def health():
    return jsonify({"status": "ok"})


# ============================================================================
# RANKING ENDPOINTS
# ============================================================================


@bp.post("/rankings/compare")
@require_auth
def record_comparison():
    """
    Record the outcome of comparing two of the user's meals.

    Body:
        {"winnerId": str, "loserId": str, "type": "win" | "lose" | "tie"}

    Returns:
        JSON: {"message": str, "winnerScore": float, "loserScore": float}
    """
    user_id = g.user_id
    svc = get_services()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    winner_id = data.get("winnerId")
    loser_id = data.get("loserId")
    if not isinstance(winner_id, str) or not isinstance(loser_id, str):
        return _json_error("Winner ID, Loser ID, and valid type (win/lose/tie) are required.", 400)

    winner_score, loser_score = svc.comparisons.record_comparison(
        user_id, winner_id, loser_id, data.get("type")
    )
    return jsonify(
        {
            "message": "Comparison recorded successfully!",
            "winnerScore": winner_score,
            "loserScore": loser_score,
        }
    )


@bp.get("/rankings")
@require_auth
def get_ranked_meals():
    """
    List the user's ranked meals, best first.

    Query params:
        mealId: Optional; return only this meal, positioned against the full list.
    """
    user_id = g.user_id
    svc = get_services()

    meal_id = request.args.get("mealId") or None
    ranked = svc.leaderboard.get_ranked(user_id, meal_id=meal_id)
    return jsonify([r.model_dump(mode="json", by_alias=True) for r in ranked])


@bp.delete("/rankings/<meal_id>")
@require_auth
def delete_meal_rank(meal_id: str):
    """Remove a meal from the rankings (the meal itself is kept)."""
    user_id = g.user_id
    svc = get_services()

    if not svc.comparisons.remove_rating(user_id, meal_id):
        return _json_error("Meal rank not found for this user or meal.", 404)
    return jsonify({"message": "Meal rank removed successfully.", "mealId": meal_id})


# ============================================================================
# MEAL ENDPOINTS
# ============================================================================


@bp.post("/meals")
@require_auth
def create_meal():
    """
    Log a new meal. Updates the user's cooking streak in the same transaction.

    Returns:
        201 with the created meal.
    """
    user_id = g.user_id
    svc = get_services()

    payload = MealCreate.model_validate(request.get_json(silent=True) or {})
    meal = svc.meals.create_meal(user_id, payload)
    return jsonify({"message": "Meal created successfully", "meal": meal.model_dump(mode="json")}), 201


@bp.get("/meals")
@require_auth
def list_meals():
    user_id = g.user_id
    svc = get_services()

    meals = svc.meals.list_meals(user_id)
    return jsonify([m.model_dump(mode="json") for m in meals])


@bp.get("/meals/<meal_id>")
@require_auth
def get_meal(meal_id: str):
    user_id = g.user_id
    svc = get_services()

    meal = svc.meals.get_meal(user_id, meal_id)
    if not meal:
        return _json_error("Meal not found or not authorized.", 404)
    return jsonify(meal.model_dump(mode="json"))


@bp.put("/meals/<meal_id>")
@require_auth
def update_meal(meal_id: str):
    user_id = g.user_id
    svc = get_services()

    payload = MealUpdate.model_validate(request.get_json(silent=True) or {})
    meal = svc.meals.update_meal(user_id, meal_id, payload)
    if not meal:
        return _json_error("Meal not found or not authorized.", 404)
    return jsonify({"message": "Meal updated successfully", "meal": meal.model_dump(mode="json")})


@bp.delete("/meals/<meal_id>")
@require_auth
def delete_meal(meal_id: str):
    user_id = g.user_id
    svc = get_services()

    if not svc.meals.delete_meal(user_id, meal_id):
        return _json_error("Meal not found or not authorized.", 404)
    return jsonify({"message": "Meal deleted successfully"})


# ============================================================================
# USER ENDPOINTS
# ============================================================================


@bp.get("/users/profile")
@require_auth
def get_profile():
    """
    Profile with stats: totalMeals, averageRating, topRankedMeals and the
    read-only streak fields.
    """
    user_id = g.user_id
    svc = get_services()

    profile = svc.users.get_profile(user_id)
    return jsonify(profile.model_dump(mode="json", by_alias=True))


@bp.put("/users/profile")
@require_auth
def update_profile():
    user_id = g.user_id
    svc = get_services()

    payload = ProfileUpdate.model_validate(request.get_json(silent=True) or {})
    try:
        profile = svc.users.update_profile(user_id, payload)
    except IntegrityError:
        return _json_error("Email already in use.", 409)
    return jsonify(
        {"message": "Profile updated successfully!", "user": profile.model_dump(mode="json", by_alias=True)}
    )
