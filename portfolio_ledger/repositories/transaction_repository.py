"""Repository for Transactions data access."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.db.models import Transaction
from portfolio_ledger.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for append-only ledger transactions."""

    def __init__(self, db: AsyncSession):
        super().__init__(Transaction, db)

    async def get_by_portfolio_id(
        self,
        portfolio_id: str,
        limit: Optional[int] = None
    ) -> List[Transaction]:
        """Transactions of a portfolio, newest first."""
        query = (
            select(Transaction)
            .where(Transaction.portfolio_id == portfolio_id)
            .order_by(
                Transaction.occurred_at.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc()
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return await self._all(query)
