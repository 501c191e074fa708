"""Pydantic schemas for the dashboard summary and stock endpoints."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class QuoteWarning(BaseModel):
    code: str
    symbol: str
    fallback_price: float = Field(alias="fallbackPrice")
    fallback_strategy: str = Field(alias="fallbackStrategy")

    model_config = ConfigDict(populate_by_name=True)


class DashboardSummaryResponse(BaseModel):
    total_value: float = Field(alias="totalValue")
    invested_value: float = Field(alias="investedValue")
    day_change: float = Field(alias="dayChange")
    total_gain_loss: float = Field(alias="totalGainLoss")
    positions_count: int = Field(alias="positionsCount")
    warnings: Optional[list[QuoteWarning]] = None

    model_config = ConfigDict(populate_by_name=True)


class QuoteResponse(BaseModel):
    symbol: str
    price: Optional[float] = None
    currency: Optional[str] = None
    as_of: Optional[str] = Field(None, alias="asOf")

    model_config = ConfigDict(populate_by_name=True)


class HistoryResponse(BaseModel):
    symbol: str
    range: str
    currency: Optional[str] = None
    points: list[dict[str, Any]]


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
