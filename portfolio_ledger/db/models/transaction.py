"""Transaction model representing immutable ledger entries."""
from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from portfolio_ledger.db.base import Base
from portfolio_ledger.db.types import UTCDateTime, utc_now


class Transaction(Base):
    """Append-only ledger entry for a buy, sell, deposit or withdrawal."""
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "type IN ('BUY', 'SELL', 'DEPOSIT', 'WITHDRAWAL')",
            name="ck_transactions_type"
        ),
        CheckConstraint("quantity >= 0", name="ck_transactions_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_transactions_price_non_negative"),
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
    holding_id = Column(
        String,
        ForeignKey("holdings.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Entry Details
    type = Column(String, nullable=False)
    symbol = Column(String, nullable=True)
    quantity = Column(Float, nullable=True)
    price = Column(Float, nullable=True)
    total_amount = Column(Float, nullable=False)

    # Timestamps
    occurred_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="transactions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "portfolio_id": self.portfolio_id,
            "holding_id": self.holding_id,
            "type": self.type,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "price": self.price,
            "total_amount": self.total_amount,
            "occurred_at": self.occurred_at,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.type}, symbol={self.symbol})>"
