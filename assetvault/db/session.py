"""Async engine and session factory for the metadata database."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from assetvault.config import MetadataConfig
from assetvault.db.base import Base
from assetvault.lib import observability


def create_engine(config: MetadataConfig) -> AsyncEngine:
    """Create the async engine for the configured metadata URL."""
    engine = create_async_engine(config.url, echo=config.echo)
    observability.instrument_sqlalchemy(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the metadata tables if they do not exist yet."""
    import assetvault.db.models  # noqa: F401  (registers models on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
