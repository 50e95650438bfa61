"""
Domain errors raised by the ranking and journaling services.

Routes translate these into HTTP status codes.
"""


class MealRankError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500


class InvalidOutcome(MealRankError):
    """Outcome tag outside win/lose/tie, or a meal compared against itself."""

    status_code = 400


class NotFoundOrForbidden(MealRankError):
    """Referenced meal does not exist or belongs to another user."""

    status_code = 404


class NotFound(MealRankError):
    """Requested record does not exist for this user."""

    status_code = 404


class TransientPersistenceFailure(MealRankError):
    """Lock timeout, lost connection or deadlock; the transaction was rolled back."""

    status_code = 503
