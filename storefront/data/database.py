# storefront/data/database.py
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from storefront.utils.settings import DATABASE_URL

Base = declarative_base()


def create_engine(url: str | None = None) -> AsyncEngine:
    return create_async_engine(url or DATABASE_URL, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    #import modeli zeby SQLAlchemy je zarejestrowal w Base.metadata
    from storefront.data import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
