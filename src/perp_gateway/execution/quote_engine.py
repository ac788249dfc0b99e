"""
QuoteEngine: execution price via a simulated trade on the reader contract.
"""

from __future__ import annotations

import logging
from typing import Optional

from perp_gateway.core.errors import InsufficientLiquidityError, InvalidAmountError, QuoteError, SyncRequiredError
from perp_gateway.core.fixed_point import from_fixed, to_fixed
from perp_gateway.core.types import ZERO_ADDRESS, MarketIdentifier, Quote, trade_flags
from perp_gateway.infra.chain import revert_data, revert_reason
from perp_gateway.infra.logging_cfg import log_event

log = logging.getLogger("perp_gateway")

# "exceeds" hex-encoded, as found inside "trade amount exceeds max amount"
LIQUIDITY_EXCEEDED_MARKER = "65786365656473"


def is_liquidity_exceeded(exc: BaseException) -> bool:
    data = revert_data(exc) or ""
    if LIQUIDITY_EXCEEDED_MARKER in data.lower():
        return True
    reason = revert_reason(exc)
    return LIQUIDITY_EXCEEDED_MARKER in reason.lower() or "exceeds max amount" in reason


def fixed_amount(amount) -> int:
    """Human amount -> non-zero fixed-point integer, or InvalidAmountError."""
    try:
        value = to_fixed(amount)
    except ValueError as exc:
        raise InvalidAmountError(detail=str(exc)) from exc
    if value == 0:
        raise InvalidAmountError(detail=f"amount {amount!r} is zero at on-chain precision")
    return value


class QuoteEngine:
    def __init__(self, chain) -> None:
        self.chain = chain

    async def quote(
        self,
        market: MarketIdentifier,
        trader_address: Optional[str],
        amount,
        is_close_only: bool = False,
    ) -> Quote:
        big_amount = fixed_amount(amount)
        flags = trade_flags(is_close_only)
        trader = trader_address or ZERO_ADDRESS

        try:
            is_synced, trade_price, total_fee, cost = await self.chain.query_trade(
                market.pool_address,
                market.perpetual_index,
                trader,
                big_amount,
                ZERO_ADDRESS,
                int(flags),
            )
        except Exception as exc:
            if is_liquidity_exceeded(exc):
                log_event(log, "quote_insufficient_liquidity", pool=market.pool_address, amount=str(amount))
                raise InsufficientLiquidityError(detail=revert_reason(exc)) from exc
            raise QuoteError(detail=revert_reason(exc)) from exc

        if not is_synced:
            raise SyncRequiredError(detail=f"pool {market.pool_address} is not synced")

        return Quote(
            price=from_fixed(trade_price),
            total_fee=from_fixed(total_fee),
            cost=from_fixed(cost),
        )
