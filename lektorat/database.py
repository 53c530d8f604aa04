"""
Database engine, session factory and lifecycle helpers.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) works for local
development and the test suite.  Only two tables exist (users and their
stored API keys), so the schema is created with ``create_all`` at startup.
"""
import logging
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from lektorat.config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    poolclass=NullPool,
)

if _is_sqlite(settings.DATABASE_URL):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    The session is committed after the handler returns and rolled back if
    anything raised.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.error("Database session rolled back: %s", exc)
            raise


async def check_database(session: AsyncSession) -> bool:
    """True when a trivial query succeeds on *session*."""
    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Database check failed: %s", exc)
        return False
    return True


async def init_db() -> None:
    """Create missing tables."""
    # Registers the ORM classes on Base.metadata
    from lektorat.models import database_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified (%s)", engine.url.get_backend_name())


async def close_db() -> None:
    """Dispose of the engine's connections."""
    await engine.dispose()
    logger.info("Database connections closed")
