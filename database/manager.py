"""
============================================================================
UPTIME MONITOR - DATABASE MANAGER
============================================================================
Owns the SQLAlchemy async engine and session factory, creates the schema
and hands out sessions / transactions to the repositories.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool

from config.settings import DatabaseSettings
from database.models import Base, MonitoredEndpoint, ObservationLog
from exceptions import DatabaseConnectionError
from utils.logger import get_logger


logger = get_logger("Database")


# ============================================================================
# DATABASE MANAGER CLASS
# ============================================================================

class DatabaseManager:
    """
    Database manager for connection handling, session management and
    schema creation.
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize database manager.

        Args:
            settings: Database settings; used when *url* is not given
            url: Explicit SQLAlchemy async URL (overrides settings)
        """
        self.settings = settings or DatabaseSettings()
        self.database_url = url or self.settings.url
        self.echo = self.settings.echo
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._is_initialized = False
        self._lock = asyncio.Lock()

        logger.info(f"DatabaseManager created with URL: {self._mask_password(self.database_url)}")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @staticmethod
    def _mask_password(url: str) -> str:
        """
        Mask password in database URL for logging.

        Args:
            url: Database URL

        Returns:
            Masked URL
        """
        if "://" not in url:
            return url

        protocol, rest = url.split("://", 1)
        if "@" not in rest:
            return url

        credentials, host_part = rest.split("@", 1)
        if ":" in credentials:
            user, _ = credentials.split(":", 1)
            return f"{protocol}://{user}:****@{host_part}"

        return url

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        """Engine options: NullPool for SQLite, a pre-pinged pool otherwise."""
        kwargs: Dict[str, Any] = {"echo": self.echo}
        if self.is_sqlite:
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_size"] = 10
            kwargs["max_overflow"] = 20
            kwargs["pool_pre_ping"] = True
        return kwargs

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.
        Creates all tables if they don't exist.

        Raises:
            DatabaseConnectionError: If the engine cannot connect
        """
        async with self._lock:
            if self._is_initialized:
                logger.warning("Database already initialized")
                return

            try:
                self.engine = create_async_engine(
                    self.database_url,
                    **self._get_engine_kwargs()
                )

                self._register_event_listeners()

                self.session_factory = async_sessionmaker(
                    self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )

                await self.create_tables()

                self._is_initialized = True
                logger.info("Database initialized successfully")

            except SQLAlchemyError as e:
                logger.error(f"Failed to initialize database: {e}")
                if self.engine:
                    await self.engine.dispose()
                    self.engine = None
                raise DatabaseConnectionError(
                    message=f"Failed to initialize database: {e}",
                    url=self._mask_password(self.database_url),
                    cause=e,
                ) from e

    def _register_event_listeners(self) -> None:
        """Register SQLAlchemy event listeners for connection management."""

        is_sqlite = self.is_sqlite

        @event.listens_for(self.engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            # SQLite only enforces foreign keys when asked to, per connection
            if is_sqlite:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
            logger.debug("New database connection established")

    async def create_tables(self) -> None:
        """Create all database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    def _require_initialized(self) -> None:
        if not self._is_initialized or self.session_factory is None:
            raise DatabaseConnectionError("Database not initialized")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a session that is committed on success and rolled back on
        failure.

        Example:
            async with db_manager.session() as session:
                row = await session.get(MonitoredEndpoint, endpoint_id)
        """
        self._require_initialized()

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error: {e}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for explicit transactions.

        Everything executed inside the block commits or rolls back as one
        unit.
        """
        self._require_initialized()

        session = self.session_factory()
        try:
            async with session.begin():
                yield session
        except Exception as e:
            logger.error(f"Transaction error: {e}")
            raise
        finally:
            await session.close()

    async def check_connection(self) -> bool:
        """
        Check if database connection is alive.

        Returns:
            True if connection is alive, False otherwise
        """
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def get_database_info(self) -> Dict[str, Any]:
        """
        Get database information and row counts.

        Returns:
            Dictionary with database info
        """
        try:
            async with self.session() as session:
                endpoint_count = await session.scalar(select(func.count(MonitoredEndpoint.id)))
                observation_count = await session.scalar(select(func.count(ObservationLog.id)))

            return {
                "status": "connected",
                "database_url": self._mask_password(self.database_url),
                "endpoints": endpoint_count or 0,
                "observations": observation_count or 0,
            }
        except Exception as e:
            logger.error(f"Failed to get database info: {e}")
            return {"status": "error", "error": str(e)}

    async def close(self) -> None:
        """Close database connections and cleanup resources."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            logger.info("Database connections closed")
        self.session_factory = None
        self._is_initialized = False


# ============================================================================
# END OF DATABASE MANAGER MODULE
# ============================================================================
