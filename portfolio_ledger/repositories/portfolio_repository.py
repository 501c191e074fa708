"""Repository for Portfolio data access."""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.db.models import Portfolio
from portfolio_ledger.repositories.base import BaseRepository


class PortfolioRepository(BaseRepository[Portfolio]):
    """Repository for portfolios."""

    def __init__(self, db: AsyncSession):
        super().__init__(Portfolio, db)

    async def list_all(self) -> List[Portfolio]:
        """All portfolios, oldest first with id as tie-break."""
        return await self._all(
            select(Portfolio).order_by(Portfolio.created_at, Portfolio.id)
        )
