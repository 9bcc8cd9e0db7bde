"""Shared fixtures: a temporary store file and services opened on it."""

from pathlib import Path

import pytest
import pytest_asyncio

from daybook.db.connection import ConnectionManager
from daybook.db.repository import RecordRepository
from daybook.services.daybook import DaybookService


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "store" / "daybook.db"


@pytest_asyncio.fixture
async def manager(db_path):
    manager = ConnectionManager(db_path)
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def repository(manager):
    connection = await manager.open()
    return RecordRepository(connection, manager.migrator)


@pytest_asyncio.fixture
async def service(db_path):
    service = DaybookService(db_path)
    yield service
    await service.close()
