#!/usr/bin/env python3
"""
Initialize database tables.

For local development and tests; deployments run ``alembic upgrade head``.
"""

import asyncio
import sys

from loguru import logger

from ledger_bridge.config.database import create_engine_and_sessionmaker
from ledger_bridge.config.settings import load_settings
from ledger_bridge.models import Base

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all database tables."""
    settings = load_settings(environment="development")
    engine, _ = create_engine_and_sessionmaker(settings)

    logger.info("Connecting to database...")
    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
