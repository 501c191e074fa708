"""Pydantic schemas for Holdings API requests and responses."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HoldingDto(BaseModel):
    id: str
    portfolio_id: str = Field(alias="portfolioId")
    symbol: str
    quantity: float
    average_cost: float = Field(alias="averageCost")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class HoldingListResponse(BaseModel):
    items: list[HoldingDto]


class CreateHoldingApiRequest(BaseModel):
    id: Any = None
    symbol: Any = None
    quantity: Any = None
    average_cost: Any = Field(None, alias="averageCost")
    created_at: Any = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)
