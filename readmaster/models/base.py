# readmaster/models/base.py
"""
SQLAlchemy Base and async engine/session factories.

Engines are built per application (or per test) from a URL instead of at
import time, so callers own the lifecycle of their connections.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from readmaster.utils.logger import logger

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True, pool_recycle=3600)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables (initial setup)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(" Database tables created")
