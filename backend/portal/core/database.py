"""Async SQLAlchemy engine and session dependency.

``DATABASE_URL`` is read once at import. Plain ``postgres://`` and
``postgresql://`` URLs are pointed at the asyncpg driver.
"""

import os

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

load_dotenv()

ASYNC_SCHEMES = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
}


def async_database_url(url: str) -> str:
    for scheme, async_scheme in ASYNC_SCHEMES.items():
        if url.startswith(scheme):
            return async_scheme + url[len(scheme):]
    return url


def _engine_options(url: str) -> dict:
    options = {
        "echo": os.getenv("SQL_ECHO", "false").lower() == "true",
        "pool_pre_ping": True,
    }
    # sqlite pools reject sizing arguments
    if not url.startswith("sqlite"):
        options["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
        options["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    return options


DATABASE_URL = async_database_url(os.getenv("DATABASE_URL", "postgresql://localhost:5432/portal"))

engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    """One session per request, closed when the response is sent"""
    async with AsyncSessionLocal() as session:
        yield session


async def ping(session: AsyncSession) -> None:
    """Round-trip a trivial query; raises SQLAlchemyError when the database is down"""
    await session.execute(text("SELECT 1"))
