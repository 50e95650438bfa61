"""create meal journal tables

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2025-06-02 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Users carry the streak state
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("profile_photo_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(), nullable=False, server_default=sa.func.now()),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_meal_date", sa.Date(), nullable=True),
    )

    op.create_table(
        "meals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date_made", sa.Date(), nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_meals_user_id", "meals", ["user_id"])
    op.create_index("idx_meals_user_date", "meals", ["user_id", "date_made"])

    op.create_table(
        "meal_tags",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("meal_id", sa.String(length=36), nullable=False),
        sa.Column("tag_name", sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(["meal_id"], ["meals.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("meal_id", "tag_name", name="uq_meal_tags_meal_tag"),
    )
    op.create_index("idx_meal_tags_meal_id", "meal_tags", ["meal_id"])

    op.create_table(
        "meal_ingredients",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("meal_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("unit", sa.String(length=50), nullable=True),
        sa.Column("calories", sa.Float(), nullable=True),
        sa.Column("protein", sa.Float(), nullable=True),
        sa.Column("carbs", sa.Float(), nullable=True),
        sa.Column("fat", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["meal_id"], ["meals.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_meal_ingredients_meal_id", "meal_ingredients", ["meal_id"])

    # Scores only; rank position is derived at read time
    op.create_table(
        "rankings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("meal_id", sa.String(length=36), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["meal_id"], ["meals.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "meal_id", name="uq_rankings_user_meal"),
    )
    op.create_index("idx_rankings_user_score", "rankings", ["user_id", "score"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_rankings_user_score", table_name="rankings")
    op.drop_table("rankings")

    op.drop_index("idx_meal_ingredients_meal_id", table_name="meal_ingredients")
    op.drop_table("meal_ingredients")

    op.drop_index("idx_meal_tags_meal_id", table_name="meal_tags")
    op.drop_table("meal_tags")

    op.drop_index("idx_meals_user_date", table_name="meals")
    op.drop_index("idx_meals_user_id", table_name="meals")
    op.drop_table("meals")

    op.drop_table("users")
