# marketsync/database.py

from functools import lru_cache
from contextlib import asynccontextmanager
import os

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from marketsync.core.config import get_settings

Base = declarative_base()


def _database_url() -> str:
    settings = get_settings()
    # Use environment variable directly if settings is empty
    database_url = settings.DATABASE_URL or os.environ.get('DATABASE_URL', '')
    if not database_url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    # Convert postgresql:// to postgresql+asyncpg:// for async support
    if database_url.startswith('postgresql://'):
        database_url = database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url


@lru_cache()
def get_engine():
    # Created on first use so importing models never needs a reachable database
    return create_async_engine(
        _database_url(),
        echo=False,
        future=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800
    )


@lru_cache()
def get_sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False
    )


def async_session() -> AsyncSession:
    return get_sessionmaker()()


@asynccontextmanager
async def get_session() -> AsyncSession:
    session = async_session()
    try:
        yield session
    finally:
        await session.close()
