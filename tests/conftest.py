"""pytest configuration and fixtures."""

import os

# Set required environment variables for testing before any imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "100000")
os.environ.setdefault("DISPLAY_TIMEZONE", "Europe/Moscow")
os.environ.pop("API_KEY", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

# Register all models on Base.metadata before create_all.
import predpool.db.pool  # noqa: F401, E402
from factories import KICKOFF, create_schema, make_session_factory, make_test_engine  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = make_test_engine()
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
def kickoff():
    return KICKOFF
