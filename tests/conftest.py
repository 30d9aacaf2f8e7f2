"""Test configuration and fixtures for BerryORM."""

import asyncio
import os
import sys

import pytest
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import create_async_engine

from berryorm import BerryORM, MemoryStorage
from tests.entities import ALL_ENTITIES
from tests.models import metadata

# Try to load environment variables from .env file
load_dotenv()


@pytest.fixture(scope="session", autouse=True)
def windows_event_loop_policy():
    """Set event loop policy for Windows compatibility."""
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def orm(storage):
    orm = BerryORM(storage)
    orm.register(*ALL_ENTITIES)
    return orm


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """Async engine with every test table created.

    Uses BERRYORM_TEST_DATABASE_URL when set, otherwise a throwaway SQLite
    file (separate connections must see the same database).
    """
    test_db_url = os.getenv('BERRYORM_TEST_DATABASE_URL')
    if test_db_url:
        engine = create_async_engine(test_db_url, echo=False, pool_pre_ping=True)
        async with engine.begin() as conn:
            await conn.run_sync(metadata.drop_all)
            await conn.run_sync(metadata.create_all)
    else:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'berryorm.db'}", echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    yield engine

    if test_db_url:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.drop_all)
    await engine.dispose()
