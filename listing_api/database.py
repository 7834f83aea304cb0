"""
Database connection and session management.
Handles async database operations with SQLAlchemy for the relational gateway and the identity provider.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool
from sqlalchemy import text, DateTime, String, func
from listing_api.config import settings
from functools import lru_cache
import logging
import uuid
from datetime import datetime

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine with pool settings suited to the database dialect.

    Args:
        database_url: SQLAlchemy async database URL
        echo: Whether to log emitted SQL

    Returns:
        Configured AsyncEngine
    """
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across the whole app
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            return create_async_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=10,  # Number of connections to maintain in the pool
        max_overflow=20,  # Additional connections that can be created on demand
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=30,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@lru_cache()
def get_engine() -> AsyncEngine:
    """Get the process-wide engine, created on first use."""
    return create_engine_for_url(settings.database_url, echo=settings.debug)


@lru_cache()
def get_session_factory() -> async_sessionmaker:
    """Get the process-wide session factory."""
    return create_session_factory(get_engine())


def generate_id() -> str:
    """Generate an opaque string identifier for new records."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """
    Base class for all database models.
    Includes common fields: id, created_at, updated_at.
    """

    # Opaque string primary key assigned by the store
    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=generate_id,
        index=True
    )

    # Timestamp fields with automatic management
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"


async def test_database_connection(engine: AsyncEngine = None) -> bool:
    """
    Test database connectivity.
    Returns True if connection is successful, False otherwise.
    """
    target_engine = engine or get_engine()
    try:
        async with target_engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.scalar()
            logger.info("Database connection successful")
            return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def create_tables(engine: AsyncEngine = None) -> None:
    """
    Create all database tables.
    This is used during application startup.
    """
    # Make sure every model is registered on the metadata
    import listing_api.models  # noqa: F401

    target_engine = engine or get_engine()
    async with target_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")


async def close_db_connection() -> None:
    """
    Close database connection.
    This should be called during application shutdown.
    """
    await get_engine().dispose()
    logger.info("Database connections closed")
