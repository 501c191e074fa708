"""Dashboard summary endpoint and server-rendered dashboard page."""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from portfolio_ledger.api.dependencies import get_ledger_service, get_valuation_service
from portfolio_ledger.core.config import settings
from portfolio_ledger.core.constants import TransactionTypes
from portfolio_ledger.core.errors import ErrorCode, LedgerError
from portfolio_ledger.schemas.dashboard import DashboardSummaryResponse, ErrorResponse
from portfolio_ledger.services import formatting
from portfolio_ledger.services.ledger_service import LedgerService
from portfolio_ledger.services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["dashboard"])


def normalize_query_portfolio_id(raw: Optional[str]) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise LedgerError(
            ErrorCode.INVALID_QUERY,
            'Query parameter "portfolioId" must be a non-empty string.'
        )
    return raw.strip()


@router.get(
    "/api/dashboard/summary",
    response_model=DashboardSummaryResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_dashboard_summary(
    portfolio_id: Optional[str] = Query(None, alias="portfolioId"),
    ledger: LedgerService = Depends(get_ledger_service),
    valuation: ValuationService = Depends(get_valuation_service)
):
    """
    Portfolio valuation summary.

    Positions without a usable quote are valued at average cost and listed
    under ``warnings``; the endpoint does not fail because of quotes.
    """
    normalized_id = normalize_query_portfolio_id(portfolio_id)
    summary = await valuation.summarize_portfolio(ledger, normalized_id)
    return summary.to_dict()


@router.get("/dashboard", response_class=HTMLResponse, include_in_schema=False)
async def dashboard_page(
    request: Request,
    portfolio_id: Optional[str] = Query(None, alias="portfolioId"),
    ledger: LedgerService = Depends(get_ledger_service),
    valuation: ValuationService = Depends(get_valuation_service)
):
    """Render the dashboard for one portfolio (the first one when none is selected)."""
    portfolios = await ledger.list_portfolios()
    context = {
        "portfolios": portfolios,
        "selected": None,
        "summary": None,
        "holdings": [],
        "warnings": [],
        "transactions": [],
        "transaction_types": TransactionTypes.ALL,
        "error": None,
    }

    selected_id = (portfolio_id or "").strip() or (portfolios[0]["id"] if portfolios else None)
    if selected_id is None:
        context["error"] = "No portfolios yet. Create one through the API to get started."
        return templates.TemplateResponse(request, "dashboard.html", context)

    try:
        detail = await ledger.get_portfolio_detail(selected_id, settings.recent_transactions_limit)
    except LedgerError as ex:
        if ex.code != ErrorCode.NOT_FOUND:
            raise
        context["error"] = f"Portfolio not found: {selected_id}"
        return templates.TemplateResponse(request, "dashboard.html", context, status_code=404)

    currency = detail["portfolio"]["base_currency"]
    summary = await valuation.compute_summary(selected_id, detail["holdings"])

    context.update({
        "selected": detail["portfolio"],
        "summary": formatting.to_summary_view_model(summary.to_dict(), currency),
        "warnings": summary.warnings,
        "holdings": [
            {
                "symbol": holding["symbol"],
                "quantity": formatting.format_quantity(holding["quantity"]),
                "average_cost": formatting.format_currency(holding["average_cost"], currency),
            }
            for holding in detail["holdings"]
        ],
        "transactions": [
            {
                "date": formatting.format_transaction_date(transaction["occurred_at"]),
                "symbol": transaction["symbol"] or "",
                "type": transaction["type"],
                "quantity": formatting.format_quantity(transaction["quantity"]),
                "price": formatting.format_currency(transaction["price"], currency),
                "total": formatting.format_currency(transaction["total_amount"], currency),
            }
            for transaction in detail["transactions"]
        ],
    })
    return templates.TemplateResponse(request, "dashboard.html", context)
