# iam/adapters/outbound/persistence/database.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from iam.adapters.configuration.config import settings
from iam.adapters.outbound.persistence.models import Base

# Configure logger
logger = logging.getLogger(__name__)

database_url = str(settings.DATABASE_URL)
logger.info(f"Connecting to database: {database_url.split('@')[-1]}")


def build_engine_kwargs(url: str) -> dict:
    """Pool options for the given URL; SQLite does not accept sizing options."""
    if url.startswith("sqlite"):
        kwargs = {}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return kwargs

    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


try:
    # Create async engine
    engine = create_async_engine(
        database_url,
        echo=False,
        future=True,
        **build_engine_kwargs(database_url)
    )

    # Create async session factory
    AsyncSessionLocal = async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )

    logger.info("Async database connection configured successfully")

except SQLAlchemyError as e:
    logger.error(f"Error connecting to database: {str(e)}")
    raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Provides an async context for database operations,
    ensuring the session is closed at the end.

    Yields:
        AsyncSession: SQLAlchemy async session

    Example:
        ```python
        async with get_db_context() as db:
            users = await db.execute(select(User))
            result = users.scalars().all()
        ```
    """
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for use with FastAPI.

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    async with get_db_context() as session:
        yield session


async def create_tables() -> None:
    """Create every table registered on ``Base.metadata`` if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
