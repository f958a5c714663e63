"""Database connection and session management."""

from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from meowchi.config import Settings, get_settings

settings = get_settings()


def build_engine(settings: Settings, **kwargs) -> AsyncEngine:
    """Create an async engine with the service's connection options.

    ``lock_timeout`` makes a blocked ``SELECT ... FOR UPDATE`` fail fast
    instead of queueing forever; the failure surfaces as a retryable error.
    """
    connect_args = {}
    if settings.database_url.startswith("postgresql+asyncpg"):
        connect_args["server_settings"] = {
            "lock_timeout": str(settings.db_lock_timeout_ms),
            "timezone": "UTC",
        }
    return create_async_engine(
        settings.database_url,
        echo=False,
        future=True,
        connect_args=connect_args,
        **kwargs,
    )


# Create async engine
engine = build_engine(
    settings,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
)

# Session factory
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session.

    The request's work is one transaction: committed when the handler
    returns, rolled back if it raises.

    Usage:
        @app.post("/meow/tap")
        async def tap(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()



async def init_db() -> None:
    """Initialize database connection pool."""
    async with engine.begin() as conn:
        await conn.run_sync(lambda _: None)


async def close_db() -> None:
    """Close database connection pool."""
    await engine.dispose()
