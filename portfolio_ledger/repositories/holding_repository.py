"""Repository for Holdings data access."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.db.models import Holding
from portfolio_ledger.repositories.base import BaseRepository


class HoldingRepository(BaseRepository[Holding]):
    """Repository for holdings with portfolio/symbol lookups."""

    def __init__(self, db: AsyncSession):
        super().__init__(Holding, db)

    async def get_by_portfolio_id(self, portfolio_id: str) -> List[Holding]:
        """All holdings of a portfolio ordered by symbol, then creation time."""
        return await self._all(
            select(Holding)
            .where(Holding.portfolio_id == portfolio_id)
            .order_by(Holding.symbol, Holding.created_at, Holding.id)
        )

    async def get_by_portfolio_and_symbol(
        self,
        portfolio_id: str,
        symbol: str,
        for_update: bool = False
    ) -> Optional[Holding]:
        """
        Get the holding for a (portfolio, symbol) pair.

        When direct inserts left several rows for the pair, the earliest
        created one is returned. ``for_update`` row-locks it on databases that
        support SELECT ... FOR UPDATE.
        """
        query = (
            select(Holding)
            .where(
                Holding.portfolio_id == portfolio_id,
                Holding.symbol == symbol
            )
            .order_by(Holding.created_at, Holding.id)
            .limit(1)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_in_portfolio(self, holding_id: str, portfolio_id: str) -> Optional[Holding]:
        """Get a holding only if it belongs to the given portfolio."""
        result = await self.db.execute(
            select(Holding).where(
                Holding.id == holding_id,
                Holding.portfolio_id == portfolio_id
            )
        )
        return result.scalar_one_or_none()
