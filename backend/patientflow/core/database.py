"""Database connection and session management."""

from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from patientflow.core.config import settings


def _engine_options() -> dict[str, Any]:
    """Engine keyword arguments for the configured backend."""
    options: dict[str, Any] = {"echo": settings.DB_ECHO}
    if settings.uses_sqlite:
        # SQLite uses a static/singleton pool, pool sizing does not apply
        return options

    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before using them
    )
    return options


# Create async engine
engine: AsyncEngine = create_async_engine(settings.DATABASE_URL, **_engine_options())


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory for an engine.

    Objects stay usable after commit (expire_on_commit=False) so results can be
    serialized once the unit of work has finished.
    """
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async session factory
async_session_maker = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session as a FastAPI dependency.

    Usage:
        @router.get("/patients")
        async def list_patients(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        yield session
