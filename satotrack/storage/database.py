"""Async database engine and session management"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from satotrack.config import settings

from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager"""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.database_url
        self.echo = settings.database_echo if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    async def init(self) -> None:
        """
        Create the engine and any missing tables.

        Raises:
            SQLAlchemyError: If the database cannot be reached
        """
        try:
            self._engine = create_async_engine(self.url, echo=self.echo)
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
            logger.info("Database initialized (%s)", self._engine.dialect.name)
        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Transactional scope: commits on success, rolls back on error.

        Raises:
            RuntimeError: If database not initialized
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
