"""
Maps classified gateway errors to a user-facing status and body.

The classified reason is the primary message; the raw detail is carried
alongside for diagnostics. Unclassified exceptions get a generic reason.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple, Type

from perp_gateway.core.errors import (
    AccountReadError,
    ConfigurationError,
    GasEstimationError,
    GatewayError,
    IndexerUnavailableError,
    InsufficientLiquidityError,
    InvalidAmountError,
    InvalidTraderError,
    PerpetualIndexOutOfBoundsError,
    PoolReadError,
    QuoteError,
    ReceiptLookupError,
    SymbolNotFoundError,
    SyncRequiredError,
    TradeSubmissionError,
)

# most specific classes first; lookup walks the MRO
STATUS_BY_KIND: Dict[Type[GatewayError], int] = {
    InvalidAmountError: 400,
    InvalidTraderError: 400,
    SymbolNotFoundError: 404,
    PerpetualIndexOutOfBoundsError: 404,
    SyncRequiredError: 409,
    InsufficientLiquidityError: 422,
    IndexerUnavailableError: 503,
    ConfigurationError: 500,
    PoolReadError: 502,
    AccountReadError: 502,
    QuoteError: 502,
    GasEstimationError: 502,
    TradeSubmissionError: 502,
    ReceiptLookupError: 502,
}


def status_for(exc: BaseException) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_KIND:
            return STATUS_BY_KIND[cls]
    return 500


def error_response(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    if isinstance(exc, GatewayError):
        return status_for(exc), {
            "error": exc.reason,
            "kind": exc.kind,
            "message": exc.detail if exc.detail is not None else exc.reason,
        }
    return 500, {
        "error": "Internal gateway error",
        "kind": "InternalError",
        "message": str(exc) or type(exc).__name__,
    }
