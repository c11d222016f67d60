# backend/src/database.py
"""
Database wiring: async engine, session factory, schema creation
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from shared.config import Config
from shared.models import Base

logger = logging.getLogger(__name__)


def create_engine(config: Config, echo: bool = False) -> AsyncEngine:
    """Async engine for the configured DATABASE_URL"""
    return create_async_engine(config.DATABASE_URL, echo=echo)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def create_all(engine: AsyncEngine):
    """Create missing tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency: a session from the factory built at startup"""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


__all__ = [
    'create_engine',
    'create_session_factory',
    'create_all',
    'get_db',
]
