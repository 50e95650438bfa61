"""
Central SQLAlchemy models and the injectable database handle.

These definitions power both Alembic migrations and runtime ORM queries.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Optional

from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.sql import func

from .errors import TransientPersistenceFailure

logger = logging.getLogger(__name__)

Base = declarative_base()


class User(Base):
    """
    Users keyed by the auth subject id.

    Streak fields are owned by the streak tracker and only change on meal insert.
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_photo_url = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())

    # Streak state
    current_streak = Column(Integer, nullable=False, default=0, server_default="0")
    longest_streak = Column(Integer, nullable=False, default=0, server_default="0")
    last_meal_date = Column(Date, nullable=True)


class Meal(Base):
    """Journal entry for a cooked meal."""
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    date_made = Column(Date, nullable=False)
    photo_url = Column(Text, nullable=True)
    overall_rating = Column(Integer, nullable=False)

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_meals_user_id", "user_id"),
        Index("idx_meals_user_date", "user_id", "date_made"),
    )


class MealTag(Base):
    __tablename__ = "meal_tags"

    id = Column(String(36), primary_key=True)
    meal_id = Column(String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False)
    tag_name = Column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("meal_id", "tag_name", name="uq_meal_tags_meal_tag"),
        Index("idx_meal_tags_meal_id", "meal_id"),
    )


class MealIngredient(Base):
    __tablename__ = "meal_ingredients"

    id = Column(String(36), primary_key=True)
    meal_id = Column(String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=True)
    unit = Column(String(50), nullable=True)
    calories = Column(Float, nullable=True)
    protein = Column(Float, nullable=True)
    carbs = Column(Float, nullable=True)
    fat = Column(Float, nullable=True)

    __table_args__ = (
        Index("idx_meal_ingredients_meal_id", "meal_id"),
    )


class Ranking(Base):
    """
    Per-(user, meal) rating record.

    Rank position is never stored; it is derived from score order at read time.
    """
    __tablename__ = "rankings"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    meal_id = Column(String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "meal_id", name="uq_rankings_user_meal"),
        Index("idx_rankings_user_score", "user_id", "score"),
    )


def get_database_url() -> str:
    """
    Get database URL from environment, defaulting to SQLite.

    Returns:
        Database connection string
    """
    database_url = os.getenv("DATABASE_URL")

    if database_url:
        # PostgreSQL
        return database_url

    flask_env = os.getenv("FLASK_ENV", "development")
    if flask_env == "production":
        # In production, we must have DATABASE_URL. Do not fallback to SQLite.
        raise ValueError("DATABASE_URL environment variable is not set in production environment!")

    # SQLite (development)
    db_path = Path(__file__).parent.parent / ".mealrank.db"
    logger.warning(f"Using SQLite database at {db_path}")
    return f"sqlite:///{db_path}"


def create_engine_for_url(database_url: Optional[str] = None) -> Engine:
    """Build a SQLAlchemy engine for the given URL (or default environment)."""
    url = database_url or get_database_url()
    engine = create_engine(
        url,
        future=True,
        echo=False,
        pool_pre_ping=True,
    )

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)

    return engine


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """Apply SQLite pragmas for cascading deletes and concurrent readers."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def insert_if_absent(
    session: Session,
    model,
    values: Dict[str, Any],
    conflict_columns: Iterable[str],
) -> bool:
    """
    Insert a row unless one already exists for the conflict columns.

    Uses the database's own ON CONFLICT DO NOTHING so two concurrent
    first-touches can never create divergent rows.

    Returns:
        True if this call inserted the row.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise ValueError(f"Unsupported database dialect: {dialect}")

    stmt = stmt.values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = session.execute(stmt)
    return (result.rowcount or 0) > 0


def _is_transient(exc: DBAPIError) -> bool:
    return isinstance(exc, OperationalError) or bool(exc.connection_invalidated)


class Database:
    """
    Engine + session factory handle passed explicitly to every component.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        database_url: Optional[str] = None,
        create_schema: bool = False,
    ):
        if db_path and not database_url:
            database_url = f"sqlite:///{Path(db_path).resolve()}"

        self.engine = create_engine_for_url(database_url)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )
        self.dialect = self.engine.dialect.name

        # SQLite dev/test databases are created in place; Postgres goes through Alembic.
        if create_schema or self.dialect == "sqlite":
            Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Example:
            with db.session_scope() as session:
                session.query(...)
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except DBAPIError as e:
            session.rollback()
            if _is_transient(e):
                logger.error(f"Transaction rolled back after persistence failure: {e}")
                raise TransientPersistenceFailure(str(e.orig or e)) from e
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
