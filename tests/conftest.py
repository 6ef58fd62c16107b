"""
Pytest fixtures shared across the test suite.

Environment variables are set before the application is imported so the
module-level settings, logging and engine pick up test values.
"""

import os
import tempfile
from typing import AsyncGenerator

os.environ["NODE_ENV"] = "test"
os.environ["LOG_LEVEL"] = "warn"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="pizzeria-logs-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["THROTTLE_LIMIT"] = "10000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with an empty, per-test log directory."""
    return Settings(node_env="test", port=3000, log_dir=str(tmp_path / "logs"))


@pytest_asyncio.fixture
async def client(test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with settings overridden."""
    from app.core.rate_limit import rate_limiter
    from app.main import app

    app.dependency_overrides[get_settings] = lambda: test_settings
    rate_limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with every table created."""
    from app.database import init_db

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
