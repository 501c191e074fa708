"""Portfolio, holding and transaction endpoints."""
import logging

from fastapi import APIRouter, Depends, Response, status

from portfolio_ledger.api.dependencies import get_ledger_service
from portfolio_ledger.schemas.dashboard import ErrorResponse
from portfolio_ledger.schemas.holding import CreateHoldingApiRequest, HoldingDto, HoldingListResponse
from portfolio_ledger.schemas.portfolio import (
    CreatePortfolioApiRequest,
    PortfolioDto,
    PortfolioListResponse,
    UpdatePortfolioApiRequest,
)
from portfolio_ledger.schemas.transaction import (
    CreateTransactionApiRequest,
    TransactionDto,
    TransactionListResponse,
)
from portfolio_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/portfolios",
    tags=["portfolios"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }
)


@router.get("", response_model=PortfolioListResponse)
async def list_portfolios(service: LedgerService = Depends(get_ledger_service)):
    """List portfolios ordered by creation time, then id."""
    return {"items": await service.list_portfolios()}


@router.post("", response_model=PortfolioDto, status_code=status.HTTP_201_CREATED)
async def create_portfolio(
    request: CreatePortfolioApiRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """
    Create a portfolio.

    Responses:
        201: Portfolio created
        400: Invalid fields (VALIDATION_ERROR)
        409: Portfolio id already exists (DUPLICATE)
    """
    return await service.create_portfolio(request.model_dump(by_alias=True, exclude_none=True))


@router.get("/{portfolio_id}", response_model=PortfolioDto)
async def get_portfolio(portfolio_id: str, service: LedgerService = Depends(get_ledger_service)):
    return await service.get_portfolio_by_id(portfolio_id)


@router.patch("/{portfolio_id}", response_model=PortfolioDto)
async def update_portfolio(
    portfolio_id: str,
    request: UpdatePortfolioApiRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """
    Update a portfolio's name and/or base currency.

    Responses:
        200: Updated portfolio
        400: No updatable fields, unknown fields or invalid values
        404: Portfolio not found
    """
    return await service.update_portfolio(
        portfolio_id,
        request.model_dump(by_alias=True, exclude_unset=True)
    )


@router.delete("/{portfolio_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_portfolio(portfolio_id: str, service: LedgerService = Depends(get_ledger_service)):
    """Delete a portfolio with its holdings and transactions; 404 when it does not exist."""
    await service.delete_portfolio(portfolio_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{portfolio_id}/holdings", response_model=HoldingListResponse)
async def list_holdings(portfolio_id: str, service: LedgerService = Depends(get_ledger_service)):
    """Holdings of a portfolio ordered by symbol."""
    await service.get_portfolio_by_id(portfolio_id)
    return {"items": await service.list_holdings_by_portfolio(portfolio_id)}


@router.post(
    "/{portfolio_id}/holdings",
    response_model=HoldingDto,
    status_code=status.HTTP_201_CREATED
)
async def create_holding(
    portfolio_id: str,
    request: CreateHoldingApiRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """Insert a holding directly, without a transaction."""
    data = request.model_dump(by_alias=True, exclude_none=True)
    data["portfolioId"] = portfolio_id
    return await service.create_holding(data)


@router.get("/{portfolio_id}/transactions", response_model=TransactionListResponse)
async def list_transactions(portfolio_id: str, service: LedgerService = Depends(get_ledger_service)):
    """Transactions of a portfolio, newest first."""
    await service.get_portfolio_by_id(portfolio_id)
    return {"items": await service.list_transactions_by_portfolio(portfolio_id)}


@router.post(
    "/{portfolio_id}/transactions",
    response_model=TransactionDto,
    status_code=status.HTTP_201_CREATED
)
async def create_transaction(
    portfolio_id: str,
    request: CreateTransactionApiRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """
    Record a transaction; BUY and SELL update the symbol's holding.

    Responses:
        201: Transaction recorded
        400: Invalid fields, missing references or INSUFFICIENT_QUANTITY
        404: Portfolio not found
        409: Transaction id already exists
    """
    await service.get_portfolio_by_id(portfolio_id)
    data = request.model_dump(by_alias=True, exclude_none=True)
    data["portfolioId"] = portfolio_id
    return await service.create_transaction(data)
