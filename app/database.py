"""
Database Connection Module
Handles the connection using the SQLAlchemy async engine.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_options() -> dict:
    if settings.is_sqlite:
        # Single shared connection so an in-memory database survives across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
    }


# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=settings.database_echo,
    **_engine_options(),
)

if settings.is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE rules unless enabled per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_connection() -> bool:
    """Run a trivial query against the database."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def connect_db(
    max_retries: Optional[int] = None,
    initial_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
) -> None:
    """
    Open a first connection, retrying with exponential backoff.

    Raises the last connection error once all attempts are exhausted.
    """
    max_retries = max_retries or settings.db_connect_retries
    delay = settings.db_connect_initial_delay if initial_delay is None else initial_delay
    max_delay = settings.db_connect_max_delay if max_delay is None else max_delay

    for attempt in range(1, max_retries + 1):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("✅ Database connected")
            return
        except (OperationalError, InterfaceError, OSError) as e:
            if attempt == max_retries:
                logger.error(f"❌ Database connection failed after {attempt} attempts")
                raise
            logger.warning(
                f"Database connection attempt {attempt}/{max_retries} failed: {e}. "
                f"Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)


async def init_db() -> None:
    """
    Create all tables in database.
    Called at startup in development; elsewhere Alembic owns the schema.
    """
    # Models must be registered on Base.metadata before create_all
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Database tables ready")
