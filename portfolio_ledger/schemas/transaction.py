"""Pydantic schemas for Transactions API requests and responses."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionDto(BaseModel):
    id: str
    portfolio_id: str = Field(alias="portfolioId")
    holding_id: Optional[str] = Field(None, alias="holdingId")
    type: str
    symbol: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    total_amount: float = Field(alias="totalAmount")
    occurred_at: datetime = Field(alias="occurredAt")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class TransactionListResponse(BaseModel):
    items: list[TransactionDto]


class CreateTransactionApiRequest(BaseModel):
    id: Any = None
    holding_id: Any = Field(None, alias="holdingId")
    type: Any = None
    symbol: Any = None
    quantity: Any = None
    price: Any = None
    total_amount: Any = Field(None, alias="totalAmount")
    occurred_at: Any = Field(None, alias="occurredAt")
    created_at: Any = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)
