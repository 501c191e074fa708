"""Portfolio model representing investment portfolios in the database."""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from portfolio_ledger.db.base import Base
from portfolio_ledger.db.types import UTCDateTime, utc_now


class Portfolio(Base):
    """Portfolio model owning its holdings and transactions."""
    __tablename__ = "portfolios"

    # Primary Key (caller-assigned)
    id = Column(String, primary_key=True)

    # Portfolio Details
    name = Column(String, nullable=False)
    base_currency = Column(String, nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    # Relationships
    holdings = relationship(
        "Holding",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    transactions = relationship(
        "Transaction",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "base_currency": self.base_currency,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Portfolio(id={self.id}, name={self.name})>"
