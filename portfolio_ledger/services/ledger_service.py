"""Business logic service for the portfolio ledger."""
import asyncio
import logging
import sqlite3
import weakref
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portfolio_ledger.core.constants import TransactionTypes, ValuationConstants
from portfolio_ledger.core.errors import ErrorCode, LedgerError
from portfolio_ledger.db.models import Holding, Portfolio, Transaction
from portfolio_ledger.repositories.holding_repository import HoldingRepository
from portfolio_ledger.repositories.portfolio_repository import PortfolioRepository
from portfolio_ledger.repositories.transaction_repository import TransactionRepository
from portfolio_ledger.services.cost_basis import apply_buy, apply_sell
from portfolio_ledger.services.metrics_service import MetricsService, get_metrics_service
from portfolio_ledger.services.normalization import (
    is_missing,
    normalize_currency,
    normalize_number,
    normalize_optional_date,
    normalize_optional_positive_number,
    normalize_optional_text,
    normalize_positive_number,
    normalize_required_text,
    normalize_symbol,
    normalize_transaction_type,
    round_to,
)

logger = logging.getLogger(__name__)

ALLOWED_PORTFOLIO_UPDATE_FIELDS = ("name", "baseCurrency")

# Structured constraint codes reported by the database drivers
_PG_FOREIGN_KEY_VIOLATION = "23503"
_PG_UNIQUE_VIOLATION = "23505"
_SQLITE_FOREIGN_KEY = sqlite3.SQLITE_CONSTRAINT_FOREIGNKEY
_SQLITE_UNIQUE_CODES = {sqlite3.SQLITE_CONSTRAINT_PRIMARYKEY, sqlite3.SQLITE_CONSTRAINT_UNIQUE}


def _field(data: Mapping[str, Any], name: str, alias: Optional[str] = None) -> Any:
    """Read a camelCase field, falling back to its snake_case alias."""
    if name in data:
        return data[name]
    if alias is not None:
        return data.get(alias)
    return None


def _classify_integrity_error(exc: IntegrityError) -> Optional[ErrorCode]:
    """Map a driver constraint error to an error code using its structured code."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _PG_FOREIGN_KEY_VIOLATION:
        return ErrorCode.FK_VIOLATION
    if sqlstate == _PG_UNIQUE_VIOLATION:
        return ErrorCode.DUPLICATE

    sqlite_code = getattr(orig, "sqlite_errorcode", None)
    if sqlite_code == _SQLITE_FOREIGN_KEY:
        return ErrorCode.FK_VIOLATION
    if sqlite_code in _SQLITE_UNIQUE_CODES:
        return ErrorCode.DUPLICATE
    return None


class LedgerService:
    """
    Service layer for portfolios, holdings and transactions.

    Each public operation runs in its own session from ``session_factory``
    and releases it before returning. Holdings are derived state: BUY and
    SELL transactions update them inside the same database transaction that
    records the ledger entry.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        metrics: Optional[MetricsService] = None
    ):
        self.session_factory = session_factory
        self.metrics = metrics or get_metrics_service()
        self._position_locks: "weakref.WeakValueDictionary[tuple, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ==================== Portfolios ====================

    async def create_portfolio(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a portfolio with a caller-assigned id."""
        portfolio_id = normalize_required_text(_field(data, "id"), "id")
        name = normalize_required_text(_field(data, "name"), "name")
        base_currency = normalize_currency(_field(data, "baseCurrency", "base_currency"), "baseCurrency")
        created_at = normalize_optional_date(_field(data, "createdAt", "created_at"), "createdAt")

        with self.metrics.track_ledger_mutation("create_portfolio"):
            async with self._unit_of_work(f"portfolio id already exists: {portfolio_id}") as session:
                portfolios = PortfolioRepository(session)
                if await portfolios.exists(portfolio_id):
                    raise LedgerError(
                        ErrorCode.DUPLICATE,
                        f"portfolio id already exists: {portfolio_id}",
                        {"id": portfolio_id}
                    )
                portfolio = await portfolios.create(Portfolio(
                    id=portfolio_id,
                    name=name,
                    base_currency=base_currency,
                    created_at=created_at
                ))

        logger.info(f"Created portfolio {portfolio_id} ({base_currency})")
        return portfolio.to_dict()

    async def list_portfolios(self) -> List[Dict[str, Any]]:
        async with self.session_factory() as session:
            portfolios = await PortfolioRepository(session).list_all()
            return [portfolio.to_dict() for portfolio in portfolios]

    async def get_portfolio_by_id(self, portfolio_id: Any) -> Dict[str, Any]:
        """Get a portfolio or raise NOT_FOUND."""
        normalized_id = normalize_required_text(portfolio_id, "id")
        async with self.session_factory() as session:
            portfolio = await PortfolioRepository(session).get_by_id(normalized_id)
            if portfolio is None:
                raise self._portfolio_not_found(normalized_id)
            return portfolio.to_dict()

    async def update_portfolio(self, portfolio_id: Any, updates: Any) -> Dict[str, Any]:
        """
        Partially update a portfolio.

        Only ``name`` and ``baseCurrency`` are mutable; at least one must be
        given.
        """
        normalized_id = normalize_required_text(portfolio_id, "id")
        if not isinstance(updates, Mapping):
            raise LedgerError(ErrorCode.VALIDATION_ERROR, "updates must be an object", {"field": "updates"})

        unknown_fields = [key for key in updates if key not in ALLOWED_PORTFOLIO_UPDATE_FIELDS]
        if unknown_fields:
            raise LedgerError(
                ErrorCode.VALIDATION_ERROR,
                "updates contain unknown fields",
                {
                    "field": "updates",
                    "allowedFields": list(ALLOWED_PORTFOLIO_UPDATE_FIELDS),
                    "unknownFields": unknown_fields,
                }
            )

        values: Dict[str, Any] = {}
        if "name" in updates:
            values["name"] = normalize_required_text(updates["name"], "name")
        if "baseCurrency" in updates:
            values["base_currency"] = normalize_currency(updates["baseCurrency"], "baseCurrency")

        if not values:
            raise LedgerError(ErrorCode.VALIDATION_ERROR, "no updatable fields provided", {"field": "updates"})

        with self.metrics.track_ledger_mutation("update_portfolio"):
            async with self._unit_of_work() as session:
                portfolio = await PortfolioRepository(session).update_by_id(normalized_id, values)
                if portfolio is None:
                    raise self._portfolio_not_found(normalized_id)

        logger.info(f"Updated portfolio {normalized_id}: {', '.join(values)}")
        return portfolio.to_dict()

    async def delete_portfolio(self, portfolio_id: Any) -> Dict[str, Any]:
        """Delete a portfolio together with its holdings and transactions."""
        normalized_id = normalize_required_text(portfolio_id, "id")
        with self.metrics.track_ledger_mutation("delete_portfolio"):
            async with self._unit_of_work() as session:
                deleted = await PortfolioRepository(session).delete_by_id(normalized_id)
                if not deleted:
                    raise self._portfolio_not_found(normalized_id)

        logger.info(f"Deleted portfolio {normalized_id}")
        return {"deleted": True, "id": normalized_id}

    # ==================== Holdings ====================

    async def create_holding(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Insert a holding directly, bypassing transaction derivation.

        Used for seeding and tests; no uniqueness check on (portfolio, symbol).
        """
        holding_id = normalize_required_text(_field(data, "id"), "id")
        portfolio_id = normalize_required_text(_field(data, "portfolioId", "portfolio_id"), "portfolioId")
        symbol = normalize_symbol(_field(data, "symbol"), "symbol")
        quantity = normalize_number(_field(data, "quantity"), "quantity")
        average_cost = normalize_number(_field(data, "averageCost", "average_cost"), "averageCost")
        created_at = normalize_optional_date(_field(data, "createdAt", "created_at"), "createdAt")

        with self.metrics.track_ledger_mutation("create_holding"):
            async with self._unit_of_work(f"portfolio does not exist: {portfolio_id}") as session:
                await self._require_portfolio(session, portfolio_id)
                holdings = HoldingRepository(session)
                if await holdings.exists(holding_id):
                    raise LedgerError(
                        ErrorCode.DUPLICATE,
                        f"holding id already exists: {holding_id}",
                        {"id": holding_id}
                    )
                holding = await holdings.create(Holding(
                    id=holding_id,
                    portfolio_id=portfolio_id,
                    symbol=symbol,
                    quantity=quantity,
                    average_cost=average_cost,
                    created_at=created_at
                ))

        return holding.to_dict()

    async def list_holdings_by_portfolio(self, portfolio_id: Any) -> List[Dict[str, Any]]:
        normalized_id = normalize_required_text(portfolio_id, "portfolioId")
        async with self.session_factory() as session:
            holdings = await HoldingRepository(session).get_by_portfolio_id(normalized_id)
            return [holding.to_dict() for holding in holdings]

    # ==================== Transactions ====================

    async def create_transaction(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Record a ledger transaction.

        BUY and SELL derive the (portfolio, symbol) holding: a BUY creates it
        or folds the lot into its weighted-average cost, a SELL reduces its
        quantity and fails with INSUFFICIENT_QUANTITY when the position is too
        small. The holding change and the transaction row commit together.

        DEPOSIT and WITHDRAWAL only record the entry.
        """
        transaction_id = normalize_required_text(_field(data, "id"), "id")
        portfolio_id = normalize_required_text(_field(data, "portfolioId", "portfolio_id"), "portfolioId")
        transaction_type = normalize_transaction_type(_field(data, "type"))
        occurred_at = normalize_optional_date(_field(data, "occurredAt", "occurred_at"), "occurredAt")
        created_at = normalize_optional_date(_field(data, "createdAt", "created_at"), "createdAt")
        raw_total = _field(data, "totalAmount", "total_amount")

        if transaction_type in TransactionTypes.POSITION:
            symbol = normalize_symbol(_field(data, "symbol"), "symbol")
            quantity = normalize_positive_number(_field(data, "quantity"), "quantity")
            price = normalize_positive_number(_field(data, "price"), "price")
            if is_missing(raw_total):
                total_amount = round_to(quantity * price, ValuationConstants.LEDGER_DECIMAL_PLACES)
            else:
                total_amount = normalize_number(raw_total, "totalAmount")

            transaction = Transaction(
                id=transaction_id,
                portfolio_id=portfolio_id,
                type=transaction_type,
                symbol=symbol,
                quantity=quantity,
                price=price,
                total_amount=total_amount,
                occurred_at=occurred_at,
                created_at=created_at
            )
            with self.metrics.track_ledger_mutation("create_transaction", transaction_type):
                async with self._position_lock(portfolio_id, symbol):
                    return await self._record_position_transaction(transaction)

        transaction = Transaction(
            id=transaction_id,
            portfolio_id=portfolio_id,
            holding_id=normalize_optional_text(_field(data, "holdingId", "holding_id"), "holdingId"),
            type=transaction_type,
            symbol=None if is_missing(_field(data, "symbol")) else normalize_symbol(_field(data, "symbol"), "symbol"),
            quantity=normalize_optional_positive_number(_field(data, "quantity"), "quantity"),
            price=normalize_optional_positive_number(_field(data, "price"), "price"),
            total_amount=normalize_number(raw_total, "totalAmount"),
            occurred_at=occurred_at,
            created_at=created_at
        )
        with self.metrics.track_ledger_mutation("create_transaction", transaction_type):
            return await self._record_cash_transaction(transaction)

    async def list_transactions_by_portfolio(
        self,
        portfolio_id: Any,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Transactions newest first: occurredAt, then createdAt, then id, all descending."""
        normalized_id = normalize_required_text(portfolio_id, "portfolioId")
        async with self.session_factory() as session:
            transactions = await TransactionRepository(session).get_by_portfolio_id(normalized_id, limit)
            return [transaction.to_dict() for transaction in transactions]

    async def get_portfolio_detail(self, portfolio_id: Any, recent_limit: int = 10) -> Dict[str, Any]:
        """Portfolio with its holdings and most recent transactions."""
        normalized_id = normalize_required_text(portfolio_id, "portfolioId")
        async with self.session_factory() as session:
            portfolio = await PortfolioRepository(session).get_by_id(normalized_id)
            if portfolio is None:
                raise self._portfolio_not_found(normalized_id)
            holdings = await HoldingRepository(session).get_by_portfolio_id(normalized_id)
            transactions = await TransactionRepository(session).get_by_portfolio_id(normalized_id, recent_limit)
            return {
                "portfolio": portfolio.to_dict(),
                "holdings": [holding.to_dict() for holding in holdings],
                "transactions": [transaction.to_dict() for transaction in transactions],
            }

    # ==================== Internals ====================

    async def _record_position_transaction(self, transaction: Transaction) -> Dict[str, Any]:
        async with self._unit_of_work(
            f"portfolio does not exist: {transaction.portfolio_id}"
        ) as session:
            await self._require_portfolio(session, transaction.portfolio_id)
            await self._require_new_transaction_id(session, transaction.id)

            holdings = HoldingRepository(session)
            holding = await holdings.get_by_portfolio_and_symbol(
                transaction.portfolio_id,
                transaction.symbol,
                for_update=True
            )

            if transaction.type == TransactionTypes.BUY:
                if holding is None:
                    holding = await holdings.create(Holding(
                        id=f"holding-{uuid4().hex}",
                        portfolio_id=transaction.portfolio_id,
                        symbol=transaction.symbol,
                        quantity=transaction.quantity,
                        average_cost=transaction.price,
                        created_at=transaction.created_at
                    ))
                else:
                    holding.quantity, holding.average_cost = apply_buy(
                        holding.quantity,
                        holding.average_cost,
                        transaction.quantity,
                        transaction.price
                    )
            else:
                available = holding.quantity if holding is not None else 0.0
                if holding is None or available < transaction.quantity:
                    logger.warning(
                        f"Rejected SELL {transaction.quantity} {transaction.symbol} in portfolio "
                        f"{transaction.portfolio_id}: only {available} held"
                    )
                    raise LedgerError(
                        ErrorCode.INSUFFICIENT_QUANTITY,
                        f"cannot sell {transaction.quantity} {transaction.symbol}; available quantity is {available}",
                        {
                            "symbol": transaction.symbol,
                            "availableQuantity": available,
                            "requestedQuantity": transaction.quantity,
                        }
                    )
                holding.quantity, holding.average_cost = apply_sell(
                    holding.quantity,
                    holding.average_cost,
                    transaction.quantity
                )

            transaction.holding_id = holding.id
            session.add(transaction)
            await session.flush()

        logger.info(
            f"Recorded {transaction.type} {transaction.quantity} {transaction.symbol} @ {transaction.price} "
            f"in portfolio {transaction.portfolio_id}; holding {holding.id} now "
            f"{holding.quantity} @ {holding.average_cost}"
        )
        return transaction.to_dict()

    async def _record_cash_transaction(self, transaction: Transaction) -> Dict[str, Any]:
        async with self._unit_of_work(
            "portfolioId and holdingId must reference existing rows"
        ) as session:
            await self._require_portfolio(session, transaction.portfolio_id)
            await self._require_new_transaction_id(session, transaction.id)
            if transaction.holding_id is not None:
                holding = await HoldingRepository(session).get_in_portfolio(
                    transaction.holding_id,
                    transaction.portfolio_id
                )
                if holding is None:
                    raise LedgerError(
                        ErrorCode.FK_VIOLATION,
                        f"holding does not exist in portfolio {transaction.portfolio_id}: {transaction.holding_id}",
                        {"reference": "holdingId", "holdingId": transaction.holding_id}
                    )
            session.add(transaction)
            await session.flush()

        logger.info(
            f"Recorded {transaction.type} {transaction.total_amount} in portfolio {transaction.portfolio_id}"
        )
        return transaction.to_dict()

    @asynccontextmanager
    async def _unit_of_work(self, integrity_message: str = "constraint violation") -> AsyncIterator[AsyncSession]:
        """
        Open a session and a database transaction around a block.

        Commits on success and rolls back on any exception. Constraint errors
        the pre-checks did not catch are classified from the driver's code.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except IntegrityError as exc:
                code = _classify_integrity_error(exc)
                if code is None:
                    raise
                raise LedgerError(code, integrity_message, {"cause": str(exc.orig)}) from exc

    @asynccontextmanager
    async def _position_lock(self, portfolio_id: str, symbol: str) -> AsyncIterator[None]:
        """Serialize BUY/SELL application per (portfolio, symbol) within this process."""
        key = (portfolio_id, symbol)
        lock = self._position_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._position_locks[key] = lock
        async with lock:
            yield

    async def _require_portfolio(self, session: AsyncSession, portfolio_id: str) -> None:
        if not await PortfolioRepository(session).exists(portfolio_id):
            raise LedgerError(
                ErrorCode.FK_VIOLATION,
                f"portfolio does not exist: {portfolio_id}",
                {"reference": "portfolioId", "portfolioId": portfolio_id}
            )

    async def _require_new_transaction_id(self, session: AsyncSession, transaction_id: str) -> None:
        if await TransactionRepository(session).exists(transaction_id):
            raise LedgerError(
                ErrorCode.DUPLICATE,
                f"transaction id already exists: {transaction_id}",
                {"id": transaction_id}
            )

    @staticmethod
    def _portfolio_not_found(portfolio_id: str) -> LedgerError:
        return LedgerError(ErrorCode.NOT_FOUND, f"portfolio not found: {portfolio_id}", {"id": portfolio_id})
