"""Pydantic schemas for Portfolio API requests and responses."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PortfolioDto(BaseModel):
    id: str
    name: str
    base_currency: str = Field(alias="baseCurrency")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class PortfolioListResponse(BaseModel):
    items: list[PortfolioDto]


class CreatePortfolioApiRequest(BaseModel):
    """Loosely typed on purpose; the ledger service normalizes and classifies errors."""
    id: Any = None
    name: Any = None
    base_currency: Any = Field(None, alias="baseCurrency")
    created_at: Any = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class UpdatePortfolioApiRequest(BaseModel):
    """Partial update; unknown keys are kept so the service can report them."""
    name: Optional[Any] = None
    base_currency: Optional[Any] = Field(None, alias="baseCurrency")

    model_config = ConfigDict(populate_by_name=True, extra="allow")
