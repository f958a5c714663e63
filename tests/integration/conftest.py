"""Integration fixtures backed by a real PostgreSQL database.

Row locks, ``ON CONFLICT`` and unique constraints are what keep the claim
ledger correct under concurrency, so these tests cannot run on mocks. They
are skipped when ``TEST_DATABASE_URL`` is not reachable.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from meowchi.config import Settings
from meowchi.models import Base
from meowchi.utils.db import build_engine
from tests.integration.ledger import get_integration_test_settings


@pytest.fixture
def integration_settings() -> Settings:
    return get_integration_test_settings()


@pytest_asyncio.fixture(scope="function")
async def integration_engine(integration_settings):
    engine = build_engine(integration_settings, poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, DBAPIError) as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not available: {e}")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(integration_engine) -> async_sessionmaker[AsyncSession]:
    """One factory per test; concurrent workers each open their own session."""
    return async_sessionmaker(
        bind=integration_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
