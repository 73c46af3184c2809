from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from foghorn.platform.config import settings
from foghorn.platform.db.base import Base

engine_options = {"echo": False, "future": True, "pool_pre_ping": True}
if not settings.DATABASE_URL.startswith("sqlite"):
    engine_options.update(pool_recycle=1800, pool_size=20, max_overflow=30, pool_timeout=30)

engine = create_async_engine(settings.DATABASE_URL, **engine_options)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)


async def get_db():
    async with SessionLocal() as session:
        yield session


async def init_db(bind=None):
    """Create every table registered on the declarative Base."""
    # Register all models on the metadata before create_all
    from foghorn.features.auth.models.user import User  # noqa: F401
    from foghorn.features.api_keys.models.api_key import ApiKey  # noqa: F401
    from foghorn.features.teams.models.team import Team, TeamMember  # noqa: F401
    from foghorn.features.sites.models.site import Site  # noqa: F401
    from foghorn.features.pages.models.page import Page  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def worker_sessionmaker():
    """
    Session factory for CLI runners and Celery tasks.

    Each run drives its own event loop (``asyncio.run``), so it gets a
    dedicated engine without pooling that is disposed when the run ends.

    Usage:
        async with worker_sessionmaker() as session_factory:
            await run_scrape(session_factory, ...)
    """
    worker_engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    try:
        await init_db(worker_engine)
        yield async_sessionmaker(worker_engine, expire_on_commit=False, autoflush=False)
    finally:
        await worker_engine.dispose()
