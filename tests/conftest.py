"""
Shared fixtures: a migrated throwaway SQLite database per test.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from config.settings import Settings
from database.migrations import apply_migrations
from database.session import build_engine, build_session_factory
from database.todos import TodoRepository
from database.users import UserRepository
from main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'todos-test.db'}",
        jwt_secret="test-secret",
        jwt_expiry_seconds=3600,
        bcrypt_rounds=4,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = build_engine(settings)
    await apply_migrations(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def users(session_factory):
    return UserRepository(session_factory, bcrypt_rounds=4)


@pytest.fixture
def todos(session_factory):
    return TodoRepository(session_factory)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
