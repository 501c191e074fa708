"""Models module initialization."""
from portfolio_ledger.db.models.holding import Holding
from portfolio_ledger.db.models.portfolio import Portfolio
from portfolio_ledger.db.models.transaction import Transaction

__all__ = [
    "Holding",
    "Portfolio",
    "Transaction",
]
