# inkbook/db/session.py
import os
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from inkbook.core.config import get_settings
from inkbook.db.base import Base

settings = get_settings()

# Detect if we're running under pytest
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ

# ---------------------------------------------------------------------------
# Main application engine + session
# ---------------------------------------------------------------------------
engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    # Avoid connection reuse across event loops under pytest.
    poolclass=NullPool if IS_TEST else None,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    The session is automatically closed when the request is completed.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_db_for_startup() -> None:
    """
    Create any missing tables on application startup.

    Typically you'd eventually replace this with Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
