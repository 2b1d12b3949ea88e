"""
Data store gateway

Owns the async engine (connection pool) and hands out scoped sessions and
transactions. One Database instance is created per process by the app
lifespan and injected into the services; nothing here is module-global.

Pool configuration differs between production and local development, and is
skipped entirely for SQLite which manages its own connections. SQLite
connections begin every transaction with BEGIN IMMEDIATE so writers are
serialised the way row locks serialise them on PostgreSQL.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from storefront.core.config import Settings
from storefront.core.exceptions import StorefrontError, StoreError, TransactionTimeoutError

logger = logging.getLogger(__name__)

Base = declarative_base()


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Hand transaction control to the "begin" listener below
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn) -> None:
    # Take the write lock up front; SQLite has no SELECT ... FOR UPDATE
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_pool_config(settings: Settings) -> dict:
    """Engine pool keyword arguments for the configured environment."""
    if settings.is_sqlite:
        return {}
    if settings.ENVIRONMENT == "production":
        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,  # Verify connections before use
        }
    return {
        "pool_size": 2,
        "max_overflow": 5,
        "pool_pre_ping": True,
    }


class Database:
    """Connection pool plus session factory with scoped transactions."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        transaction_timeout: Optional[float] = 10.0,
        **engine_options,
    ):
        self.url = url
        self.transaction_timeout = transaction_timeout
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_options)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine.sync_engine, "begin", _begin_immediate)
        self.sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            transaction_timeout=settings.DB_TRANSACTION_TIMEOUT_SECONDS,
            **build_pool_config(settings),
        )

    async def create_all(self) -> None:
        """Create any missing tables for the registered models."""
        # Registers the mappers on Base.metadata
        import storefront.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close every pooled connection. Called once at shutdown."""
        await self.engine.dispose()
        logger.info("Database pool disposed")

    async def ping(self) -> None:
        async with self.sessionmaker() as session:
            await session.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Plain session for single-statement reads.

        Store failures surface as StoreError; the connection is returned to
        the pool on every path.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Query failed: {type(e).__name__}: {e}")
                raise StoreError(details={"cause": type(e).__name__}) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Scoped transaction.

        Commits when the block exits normally. Any exception rolls back
        before propagating, and the connection is released on every path
        including timeout.

        Usage:
            async with database.transaction() as session:
                await session.execute(...)
        """
        async with self.sessionmaker() as session:
            try:
                async with asyncio.timeout(self.transaction_timeout):
                    async with session.begin():
                        yield session
            except TimeoutError as e:
                logger.warning(f"Transaction exceeded {self.transaction_timeout}s, rolled back")
                raise TransactionTimeoutError() from e
            except StorefrontError as e:
                logger.info(f"Transaction rolled back: {e.code}")
                raise
            except SQLAlchemyError as e:
                logger.error(f"Transaction failed and was rolled back: {type(e).__name__}: {e}")
                raise StoreError(details={"cause": type(e).__name__}) from e
