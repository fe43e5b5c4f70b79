"""
Shellgate - Database
Async SQLAlchemy engine and session factory for connection profiles
"""

import os
from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all models"""


class Database:
    """Owns the engine and session factory for the lifetime of the process"""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init(self):
        """Create tables if they do not exist"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    async def close(self):
        await self.engine.dispose()


def build_database(url: str, echo: bool = False) -> Database:
    """Create a Database, making sure a local sqlite directory exists"""
    if url.startswith("sqlite") and ":///" in url and ":memory:" not in url:
        path = url.split(":///", 1)[1]
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    return Database(url, echo=echo)
