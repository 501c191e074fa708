"""Demo data for local development."""
import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portfolio_ledger.db.models import Holding, Portfolio, Transaction
from portfolio_ledger.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


DEMO_FIXTURE = {
    "portfolio": {
        "id": "portfolio-demo-001",
        "name": "Demo Growth Portfolio",
        "base_currency": "USD",
        "created_at": _ts("2024-01-15T09:30:00"),
    },
    "holdings": [
        {
            "id": "holding-aapl-001",
            "portfolio_id": "portfolio-demo-001",
            "symbol": "AAPL",
            "quantity": 10.0,
            "average_cost": 150.25,
            "created_at": _ts("2024-01-15T09:35:00"),
        },
    ],
    "transactions": [
        {
            "id": "txn-deposit-001",
            "portfolio_id": "portfolio-demo-001",
            "holding_id": None,
            "type": "DEPOSIT",
            "symbol": None,
            "quantity": None,
            "price": None,
            "total_amount": 5000.0,
            "occurred_at": _ts("2024-01-15T09:31:00"),
            "created_at": _ts("2024-01-15T09:31:00"),
        },
        {
            "id": "txn-buy-aapl-001",
            "portfolio_id": "portfolio-demo-001",
            "holding_id": "holding-aapl-001",
            "type": "BUY",
            "symbol": "AAPL",
            "quantity": 10.0,
            "price": 150.25,
            "total_amount": 1502.5,
            "occurred_at": _ts("2024-01-15T09:36:00"),
            "created_at": _ts("2024-01-15T09:36:00"),
        },
    ],
}


async def seed_database(session_factory: async_sessionmaker[AsyncSession]) -> dict:
    """
    Insert or replace the demo portfolio, holdings and transactions.

    Returns:
        Row counts per table after seeding
    """
    async with session_factory() as session:
        async with session.begin():
            await session.merge(Portfolio(**DEMO_FIXTURE["portfolio"]))
            # Flush parents first so child rows satisfy their foreign keys
            await session.flush()
            for holding in DEMO_FIXTURE["holdings"]:
                await session.merge(Holding(**holding))
            await session.flush()
            for transaction in DEMO_FIXTURE["transactions"]:
                await session.merge(Transaction(**transaction))

        counts = {}
        for name, model in (("portfolios", Portfolio), ("holdings", Holding), ("transactions", Transaction)):
            counts[name] = await BaseRepository(model, session).count()

    logger.info(f"Seed complete: {counts}")
    return counts


async def _main() -> None:
    from portfolio_ledger.db.migrate import create_schema
    from portfolio_ledger.db.session import AsyncSessionLocal, engine

    try:
        await create_schema(engine)
        await seed_database(AsyncSessionLocal)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(_main())
