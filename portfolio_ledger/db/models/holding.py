"""Holding model representing portfolio holdings in the database."""
from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from portfolio_ledger.db.base import Base
from portfolio_ledger.db.types import UTCDateTime, utc_now


class Holding(Base):
    """
    Holding model representing the current position in one symbol.

    Derived from BUY/SELL transactions; quantity and average cost are updated
    in place by the ledger service.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_holdings_quantity_non_negative"),
        CheckConstraint("average_cost >= 0", name="ck_holdings_average_cost_non_negative"),
        Index("ix_holdings_portfolio_symbol", "portfolio_id", "symbol"),
    )

    # Primary Key
    id = Column(String, primary_key=True)

    # Foreign Keys
    portfolio_id = Column(
        String,
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Position
    symbol = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    average_cost = Column(Float, nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="holdings")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "portfolio_id": self.portfolio_id,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "average_cost": self.average_cost,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Holding(id={self.id}, symbol={self.symbol}, quantity={self.quantity})>"
