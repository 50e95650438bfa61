"""
Data models for the meal journal.

Uses Pydantic for validation and serialization.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .streaks import normalize_meal_date


class Outcome(str, Enum):
    """Result of a pairwise comparison, from the first meal's point of view."""
    WIN = "win"
    LOSE = "lose"
    TIE = "tie"


class IngredientInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: Optional[float] = Field(None, ge=0.0)
    unit: Optional[str] = Field(None, max_length=50)
    calories: Optional[float] = Field(None, ge=0.0)
    protein: Optional[float] = Field(None, ge=0.0)
    carbs: Optional[float] = Field(None, ge=0.0)
    fat: Optional[float] = Field(None, ge=0.0)


class Ingredient(IngredientInput):
    id: str


def _clean_tags(tags: List[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        name = tag.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


class MealCreate(BaseModel):
    """Payload for logging a new meal"""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    date_made: date = Field(..., description="Cook date; timestamps are reduced to the UTC day")
    overall_rating: int = Field(..., ge=1, le=5)
    photo_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    ingredients: List[IngredientInput] = Field(default_factory=list)

    @field_validator("date_made", mode="before")
    @classmethod
    def _normalize_date(cls, value):
        return normalize_meal_date(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return _clean_tags(value)


class MealUpdate(BaseModel):
    """Partial update; None leaves the stored value untouched."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    date_made: Optional[date] = None
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    photo_url: Optional[str] = None
    clear_photo: bool = False
    tags: Optional[List[str]] = None
    ingredients: Optional[List[IngredientInput]] = None

    @field_validator("date_made", mode="before")
    @classmethod
    def _normalize_date(cls, value):
        return None if value is None else normalize_meal_date(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return None if value is None else _clean_tags(value)


class Meal(BaseModel):
    """Complete meal with tags and ingredients"""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    date_made: date
    photo_url: Optional[str] = None
    overall_rating: int
    tags: List[str] = Field(default_factory=list)
    ingredients: List[Ingredient] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class RankedMeal(BaseModel):
    """Leaderboard row; rank_position is derived from score order at read time."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    meal_id: str
    score: float
    rank_position: int = Field(..., ge=1)
    title: str
    description: Optional[str] = None
    photo_url: Optional[str] = None
    overall_rating: int
    date_made: date
    tags: List[str] = Field(default_factory=list)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    profile_photo_url: Optional[str] = None
    clear_photo: bool = False


class ProfileStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_meals: int = 0
    average_rating: float = 0.0
    top_ranked_meals: List[RankedMeal] = Field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    last_meal_date: Optional[date] = None


class UserProfile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    stats: ProfileStats = Field(default_factory=ProfileStats)
