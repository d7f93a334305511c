"""
SQL persistence for exercise sessions.

- Lazily created SQLAlchemy engine, URL from TEST_DATABASE_URL, DATABASE_URL or settings
- In-memory SQLite shares one connection so tests see a single database
- `exercise_sessions` table, unique per (user_id, session_id)
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
import logging
import os

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Float, Index, UniqueConstraint, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func

from consistency.core.config import settings

logger = logging.getLogger("consistency")

metadata = MetaData()

# Pool sizing for server databases
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


# occurred_at is always written in UTC
exercise_sessions = Table(
    'exercise_sessions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('session_id', String(255), nullable=False),
    Column('occurred_at', DateTime(timezone=True), nullable=False),
    Column('duration_sec', Float, nullable=True),
    Column('session_type', String(100), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('user_id', 'session_id', name='uq_exercise_sessions_user_session'),
    # Per-user window scans ordered by time
    Index('idx_exercise_sessions_user_occurred', 'user_id', 'occurred_at'),
)


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins, then the live environment, then settings."""
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or settings.DATABASE_URL


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
    }


def init_engine(database_url: Optional[str] = None) -> Engine:
    """
    (Re)create the engine and session factory.

    Args:
        database_url: Optional override for the configured URL

    Raises:
        ValueError: no URL configured anywhere
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured. Set DATABASE_URL in environment or .env file.")

    _engine = create_engine(url, echo=False, **_engine_options(url))
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the engine; the next access re-reads the URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Session scope: commit on success, roll back on any error."""
    if _SessionLocal is None:
        init_engine()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    """Idempotent: existing tables are left alone."""
    metadata.create_all(bind=get_engine())


def drop_all_tables() -> None:
    """Destructive. Tests and local development only."""
    metadata.drop_all(bind=get_engine())


def check_connection() -> bool:
    """True when a trivial query succeeds; failures are logged, never raised."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
