"""
Normalization of loosely-typed input into canonical ledger values.

Every function is pure and raises ``LedgerError`` with code
``VALIDATION_ERROR`` and a ``{"field": ...}`` details payload naming the
offending field.
"""
import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from dateutil import parser

from portfolio_ledger.core.constants import TransactionTypes
from portfolio_ledger.core.errors import ErrorCode, LedgerError


def _validation_error(message: str, field: str, **extra: Any) -> LedgerError:
    return LedgerError(ErrorCode.VALIDATION_ERROR, message, {"field": field, **extra})


def is_missing(value: Any) -> bool:
    """Missing means absent or explicitly null."""
    return value is None


def normalize_required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _validation_error(f"{field} must be a non-empty string", field)
    return value.strip()


def normalize_optional_text(value: Any, field: str) -> Optional[str]:
    if is_missing(value):
        return None
    return normalize_required_text(value, field)


def normalize_symbol(value: Any, field: str = "symbol") -> str:
    return normalize_required_text(value, field).upper()


def normalize_currency(value: Any, field: str = "baseCurrency") -> str:
    return normalize_required_text(value, field).upper()


def _parse_number(value: Any, field: str) -> float:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool):
        raise _validation_error(f"{field} must be a valid number", field, value=value)

    if isinstance(value, (int, float, Decimal)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(Decimal(value.strip()))
        except (InvalidOperation, ValueError):
            raise _validation_error(f"{field} must be a valid number", field, value=value)
    else:
        raise _validation_error(f"{field} must be a valid number", field, value=value)

    if not math.isfinite(parsed):
        raise _validation_error(f"{field} must be a valid number", field, value=str(value))
    return parsed


def normalize_number(value: Any, field: str) -> float:
    """Parse a finite, non-negative number."""
    parsed = _parse_number(value, field)
    if parsed < 0:
        raise _validation_error(f"{field} must be >= 0", field, value=parsed)
    return parsed


def normalize_positive_number(value: Any, field: str) -> float:
    """Parse a finite number strictly greater than zero."""
    parsed = _parse_number(value, field)
    if parsed <= 0:
        raise _validation_error(f"{field} must be > 0", field, value=parsed)
    return parsed


def normalize_optional_positive_number(value: Any, field: str) -> Optional[float]:
    if is_missing(value):
        return None
    return normalize_positive_number(value, field)


def normalize_date(value: Any, field: str) -> datetime:
    """
    Parse a timestamp into a timezone-aware UTC datetime.

    Accepts datetime/date objects, ISO-8601 strings (with or without offset)
    and epoch milliseconds. Naive values are read as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise _validation_error(f"{field} must be a valid date", field, value=str(value))
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise _validation_error(f"{field} must be a valid date", field, value=value)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = parser.isoparse(text)
        except (ValueError, OverflowError):
            try:
                parsed = parser.parse(text)
            except (ValueError, OverflowError):
                raise _validation_error(f"{field} must be a valid date", field, value=value)
    else:
        raise _validation_error(f"{field} must be a valid date", field, value=value)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_optional_date(value: Any, field: str) -> datetime:
    """Like normalize_date, but absent values default to now."""
    if is_missing(value):
        return datetime.now(timezone.utc)
    return normalize_date(value, field)


def normalize_transaction_type(value: Any, field: str = "type") -> str:
    transaction_type = normalize_required_text(value, field).upper()
    if transaction_type not in TransactionTypes.ALL:
        raise _validation_error(
            f"{field} must be one of {', '.join(TransactionTypes.ALL)}",
            field,
            value=transaction_type
        )
    return transaction_type


def round_to(value: float, places: int) -> float:
    """Fixed-point rounding, half away from zero."""
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    # -0.0 reports as 0.0
    return float(rounded) or 0.0


def finite_or_none(value: Any) -> Optional[float]:
    """Lenient numeric read for third-party payloads; None when missing or not finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None
