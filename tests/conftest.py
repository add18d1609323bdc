"""Shared fixtures for SatoTrack tests"""

import pytest
import pytest_asyncio

from satotrack.config import IngestionConfig
from satotrack.storage import Database


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    return IngestionConfig.from_settings()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'satotrack-test.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    db = Database(url=database_url, echo=False)
    await db.init()
    yield db
    await db.close()
