"""Database engine and session management for the SQL user store."""

from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from usergate.core.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for `database_url`.

    In-memory SQLite is pinned to a single shared connection so every session
    (and every threadpool worker) sees the same database.
    """
    in_memory = database_url == "sqlite://" or (
        database_url.startswith("sqlite") and ":memory:" in database_url
    )
    if in_memory:
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True, echo=echo)


@lru_cache
def get_engine() -> Engine:
    """Engine for the configured DATABASE_URL, created on first use."""
    settings = get_settings()
    return build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the configured engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
