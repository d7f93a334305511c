# consistency/conftest.py
import pytest
from datetime import datetime

from consistency.tests.factories import REFERENCE_DATE, make_session


@pytest.fixture
def reference_date() -> datetime:
    return REFERENCE_DATE


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture(scope="function", autouse=True)
def in_memory_store(monkeypatch):
    """
    Every test starts with an empty in-memory session store.

    DATABASE_URL is removed so store selection never reaches a real database.
    """
    from consistency.features.sessions.store import reset_store, get_store

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.setattr("consistency.core.config.settings.DATABASE_URL", None)
    reset_store()
    store = get_store()
    yield store
    reset_store()


@pytest.fixture
def sql_store():
    """SQL session store on a private in-memory SQLite database."""
    from consistency.core.database import init_engine, create_all_tables, drop_all_tables, dispose_engine
    from consistency.features.sessions.store_sql import SqlSessionStore

    init_engine("sqlite://")
    create_all_tables()
    yield SqlSessionStore()
    drop_all_tables()
    dispose_engine()
