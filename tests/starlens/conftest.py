"""Shared fixtures for starlens tests.

Cache tests run against a throwaway SQLite file per test; no external
services are needed. GitHub is replaced by :class:`starlens.testing.FakeGitHub`.
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from starlens.core.database import create_schema, create_session_factory
from starlens.services.cache_service import CacheService
from starlens.testing import Clock, FakeSleep

TTL_MS = 60_000


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.sqlite'}"


@pytest.fixture
async def engine(db_url):
    eng = create_async_engine(db_url)
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def cache(session_factory, clock):
    return CacheService(session_factory, TTL_MS, clock=clock)
