"""
tabulation/database.py
Store context: engine, session factory and change broadcaster.

The context is process-wide but never connects at import time; call
`await store_context.init()` at startup and `await store_context.close()`
at shutdown.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tabulation.config.settings import Settings, settings as default_settings
from tabulation.exceptions import ConfigurationError
from tabulation.orm.base import Base
import tabulation.orm  # ensures all models are registered
from tabulation.realtime.broadcast_adapter import BroadcastAdapter
from tabulation.realtime.in_memory_adapter import InMemoryAdapter
from tabulation.services.row_store import RowStore

logger = logging.getLogger(__name__)


def _engine_options(database_url: str, echo: bool) -> dict:
    if "sqlite" in database_url.lower():
        if ":memory:" in database_url:
            # One shared connection, otherwise every session sees an empty database
            return {
                "echo": echo,
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {
            "echo": echo,
            "pool_pre_ping": True,
            "connect_args": {"timeout": 30.0},  # SQLite busy timeout in seconds
        }
    return {
        "echo": echo,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 3600,
    }


class StoreContext:
    """
    Holds the engine, session factory and broadcaster for one process.
    """

    def __init__(self, settings: Optional[Settings] = None, broadcaster: Optional[BroadcastAdapter] = None):
        self.settings = settings or default_settings
        self.broadcaster = broadcaster or InMemoryAdapter()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    @property
    def initialized(self) -> bool:
        return self.engine is not None

    async def init(self, create_schema: bool = True) -> "StoreContext":
        """
        Validate configuration, create the engine and (optionally) the schema.

        Raises:
            ConfigurationError: When the store URL or signing key is missing
        """
        if self.initialized:
            return self

        self.settings.validate()
        self.engine = create_async_engine(
            self.settings.database_url,
            **_engine_options(self.settings.database_url, self.settings.sql_echo),
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        if create_schema:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info(f"Store context initialized: {self.settings.as_dict()['database_backend']}")
        return self

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            raise ConfigurationError("Store context is not initialized")
        return self.session_factory()

    @asynccontextmanager
    async def store(self) -> AsyncIterator[RowStore]:
        """Scoped RowStore bound to a fresh session."""
        async with self.session() as session:
            yield RowStore(session, self.broadcaster)

    async def close(self) -> None:
        """Release subscriptions and dispose the engine."""
        await self.broadcaster.close()
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Store context closed")
        self.engine = None
        self.session_factory = None


store_context = StoreContext()


async def get_store() -> AsyncIterator[RowStore]:
    """Dependency for a RowStore wired to the process broadcaster"""
    async with store_context.store() as store:
        yield store
