"""
Database Engine

Creates the async SQLAlchemy engine shared by every snapshot task.
PostgreSQL is reached through the asyncpg driver; the engine's
connection pool handles concurrent writes from parallel tasks.

Usage:
    engine = create_engine(settings)
    await check_connection(engine)
    ...
    await engine.dispose()
"""

from typing import Any, Dict, Union

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from core.config import Settings
from core.logging import get_logger

logger = get_logger(__name__)

DRIVER = "postgresql+asyncpg"


def build_database_url(settings: Settings) -> Union[URL, str]:
    """
    Resolve the database URL.

    The discrete DB_HOST/DB_PORT/DB_USER/DB_PASSWORD/DB_NAME variables win when
    DB_HOST is set; otherwise DATABASE_URL is used as is.
    """
    if settings.uses_discrete_db_settings:
        return URL.create(
            DRIVER,
            username=settings.db_user,
            password=settings.db_password,
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
        )
    return settings.database_url


def build_connect_args(settings: Settings) -> Dict[str, Any]:
    """Driver keyword arguments (asyncpg takes sslmode values through 'ssl')"""
    if settings.db_sslmode:
        return {"ssl": settings.db_sslmode}
    return {}


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the shared async engine.

    Args:
        settings: Recorder settings

    Returns:
        AsyncEngine with pre-ping enabled so stale pooled connections are replaced
    """
    url = build_database_url(settings)
    engine = create_async_engine(
        url,
        pool_pre_ping=True,
        connect_args=build_connect_args(settings),
    )
    safe_url = make_url(url).render_as_string(hide_password=True)
    logger.info(f"Database engine created for {safe_url}")
    return engine


async def check_connection(engine: AsyncEngine) -> None:
    """
    Run a trivial query to verify the database is reachable.

    Raises:
        sqlalchemy.exc.SQLAlchemyError / OSError: If the database cannot be reached
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Connected to the database")
