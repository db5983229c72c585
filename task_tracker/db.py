"""Database engine construction, session factory and health probing.

The engine is not created at import time. The application lifespan builds it
once, keeps it on ``app.state`` and hands the session factory to the
repositories through FastAPI dependencies, so tests can swap in their own.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from .config import settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()

SessionFactory = async_sessionmaker[AsyncSession]


# ==================== Connection Pool Setup ====================

def create_engine_from_settings() -> AsyncEngine:
    """Create the pooled asyncpg engine described by settings."""
    engine = create_async_engine(
        settings.get_async_db_url(),
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before use
        connect_args={
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "command_timeout": settings.DB_QUERY_TIMEOUT,
        },
    )
    logger.info(
        f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
        f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Session factory bound to ``engine``; objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


# ==================== Health ====================

async def check_db_connection(session_factory: SessionFactory) -> bool:
    """Run ``SELECT 1`` once. No retries: a failed check is reported as is."""
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


# ==================== Cleanup ====================

async def dispose_engine(engine: AsyncEngine) -> None:
    """Close every pooled connection during application shutdown."""
    logger.info("Disposing database engine and closing connections")
    try:
        await engine.dispose()
        logger.info("Database connections closed successfully")
    except Exception as e:
        logger.error(f"Error disposing database engine: {str(e)}", exc_info=True)
