"""Schema creation for the ledger tables."""
import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from portfolio_ledger.db.base import Base
from portfolio_ledger.db import models  # noqa: F401

logger = logging.getLogger(__name__)


async def create_schema(engine: AsyncEngine) -> list[str]:
    """
    Create any missing tables, indexes and constraints.

    Idempotent; existing tables are left untouched.

    Returns:
        Names of the tables known to the metadata
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    table_names = sorted(Base.metadata.tables.keys())
    logger.info(f"Schema ready: {', '.join(table_names)}")
    return table_names


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop all ledger tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Schema dropped")


async def _main(engine: Optional[AsyncEngine] = None) -> None:
    if engine is None:
        from portfolio_ledger.db.session import engine as default_engine
        engine = default_engine
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(_main())
