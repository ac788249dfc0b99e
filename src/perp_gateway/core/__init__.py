"""
Core package: domain types, errors, fixed-point helpers and the pure
account computation.
"""

from perp_gateway.core.computation import compute_account
from perp_gateway.core.errors import GatewayError
from perp_gateway.core.fixed_point import DECIMALS, format_decimal, from_fixed, to_fixed
from perp_gateway.core.types import (
    MarketIdentifier,
    PerpetualState,
    PoolSnapshot,
    RawAccountStorage,
    TradeFlag,
    trade_flags,
)

__all__ = [
    "compute_account",
    "GatewayError",
    "DECIMALS",
    "format_decimal",
    "from_fixed",
    "to_fixed",
    "MarketIdentifier",
    "PerpetualState",
    "PoolSnapshot",
    "RawAccountStorage",
    "TradeFlag",
    "trade_flags",
]
