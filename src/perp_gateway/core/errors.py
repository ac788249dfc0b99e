"""
Classified failures raised by the gateway.

Every error carries a user-facing ``reason`` and the raw ``detail`` from the
underlying collaborator (contract revert reason, RPC message, indexer error).
The boundary layer renders ``reason`` as the primary message and keeps
``detail`` for diagnostics.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base class for all classified gateway failures."""

    default_reason = "Gateway request failed"

    def __init__(self, reason: Optional[str] = None, detail: Optional[str] = None) -> None:
        self.reason = reason or self.default_reason
        self.detail = detail
        super().__init__(self.reason if detail is None else f"{self.reason}: {detail}")

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(GatewayError):
    """Fatal startup error: unknown network, missing address, bad setting."""

    default_reason = "Invalid gateway configuration"


class SymbolNotFoundError(GatewayError):
    default_reason = "Symbol not found"


class PerpetualIndexOutOfBoundsError(GatewayError):
    default_reason = "PerpetualIndex is out of bounds"


class PoolReadError(GatewayError):
    default_reason = "Read LiquidityPool failed"


class AccountReadError(GatewayError):
    default_reason = "Read AccountStorage failed"


class IndexerUnavailableError(GatewayError):
    default_reason = "Indexer unavailable"


class IndexerQueryError(IndexerUnavailableError):
    """The indexer answered with an error envelope."""

    default_reason = "Indexer query failed"


class SyncRequiredError(GatewayError):
    default_reason = "Sync perpetual storage failed"


class QuoteError(GatewayError):
    default_reason = "Query price failed"


class InsufficientLiquidityError(QuoteError):
    """Trade amount exceeds the liquidity available in the pool."""

    default_reason = "Insufficient liquidity"


class InvalidAmountError(GatewayError):
    default_reason = 'Invalid "amount"'


class InvalidTraderError(GatewayError):
    default_reason = "Error getting wallet"


class GasEstimationError(GatewayError):
    default_reason = "Can not fetch perpetualCountInLiquidityPool"


class TradeSubmissionError(GatewayError):
    default_reason = "Trade failed"


class ReceiptLookupError(GatewayError):
    default_reason = "Get receipt failed"
