"""Async database manager for OrderDesk."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orderdesk.common.config import OrderDeskSettings
from orderdesk.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import orderdesk.catalog.models  # noqa: F401
import orderdesk.orders.models  # noqa: F401
import orderdesk.webhooks.models  # noqa: F401


class DatabaseManager:
    """Owns the async engine and hands out unit-of-work sessions."""

    def __init__(self, settings: OrderDeskSettings):
        self._settings = settings
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    async def init(self) -> None:
        self.engine = create_async_engine(
            self._settings.db_url, echo=self._settings.db_echo
        )
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized, call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized, call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
