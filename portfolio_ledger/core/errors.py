"""Classified errors raised by the ledger, valuation and quote layers."""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for service operations."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FK_VIOLATION = "FK_VIOLATION"
    INSUFFICIENT_QUANTITY = "INSUFFICIENT_QUANTITY"
    DUPLICATE = "DUPLICATE"
    INVALID_QUERY = "INVALID_QUERY"
    INVALID_SYMBOL = "INVALID_SYMBOL"
    INVALID_RANGE = "INVALID_RANGE"
    QUOTE_PROVIDER_ERROR = "QUOTE_PROVIDER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# HTTP status used by the API boundary for each code
ERROR_STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FK_VIOLATION: 400,
    ErrorCode.INSUFFICIENT_QUANTITY: 400,
    ErrorCode.DUPLICATE: 409,
    ErrorCode.INVALID_QUERY: 400,
    ErrorCode.INVALID_SYMBOL: 400,
    ErrorCode.INVALID_RANGE: 400,
    ErrorCode.QUOTE_PROVIDER_ERROR: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}


class LedgerError(Exception):
    """
    Error carrying a classified code and a structured details payload.

    All codes except INTERNAL_ERROR are caller-correctable.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"<LedgerError(code={self.code.value}, message={self.message!r})>"


class QuoteProviderError(Exception):
    """Raised by quote providers when a quote or history cannot be fetched."""
