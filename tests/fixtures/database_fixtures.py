"""Fixtures for a throwaway SQLite database."""

import pytest
import pytest_asyncio

from agentcash.infrastructure.database.session import build_engine, build_session_factory, init_db


@pytest_asyncio.fixture
async def engine(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
