"""
TradeBuilder: turns a human trade request into a signed pool transaction.

Submission is at-most-once: the broadcast is never retried here, and the
builder does not wait for confirmation (see ReceiptTracker).
"""

from __future__ import annotations

import logging
import math
import time
from decimal import Decimal
from typing import Callable, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3

from perp_gateway.core.errors import GasEstimationError, InvalidAmountError, TradeSubmissionError
from perp_gateway.core.fixed_point import parse_decimal, to_fixed
from perp_gateway.core.types import ZERO_ADDRESS, MarketIdentifier, TradeHandle, TradeIntent, trade_flags
from perp_gateway.execution.quote_engine import fixed_amount
from perp_gateway.infra.chain import revert_reason
from perp_gateway.infra.logging_cfg import log_event

log = logging.getLogger("perp_gateway")

TRADE_EXPIRE_TIME = 86400
DEFAULT_TRADE_GAS_BASE = 4_800_000
DEFAULT_TRADE_GAS_PER_PERPETUAL = 7_300


class TradeBuilder:
    def __init__(
        self,
        chain,
        gas_base: int = DEFAULT_TRADE_GAS_BASE,
        gas_per_perpetual: int = DEFAULT_TRADE_GAS_PER_PERPETUAL,
        clock: Callable[[], float] = time.time,
        metrics=None,
    ) -> None:
        self.chain = chain
        self.gas_base = gas_base
        self.gas_per_perpetual = gas_per_perpetual
        self.clock = clock
        self.metrics = metrics

    def estimate_gas_limit(self, perpetual_count: Optional[int]) -> int:
        if not perpetual_count:
            raise GasEstimationError(detail=f"perpetual count is {perpetual_count!r}")
        return self.gas_base + perpetual_count * self.gas_per_perpetual

    def deadline(self) -> int:
        return math.ceil(self.clock()) + TRADE_EXPIRE_TIME

    def build_intent(
        self,
        trader_address: str,
        market: MarketIdentifier,
        amount,
        limit_price,
        is_close_only: bool,
        gas_price_wei: int,
        gas_limit: int,
    ) -> TradeIntent:
        big_amount = fixed_amount(amount)
        big_limit_price = _fixed_limit_price(limit_price)
        return TradeIntent(
            market=market,
            trader_address=trader_address,
            amount=big_amount,
            limit_price=big_limit_price,
            is_close_only=is_close_only,
            deadline=self.deadline(),
            referer=ZERO_ADDRESS,
            flags=trade_flags(is_close_only),
            gas_price=gas_price_wei,
            gas_limit=gas_limit,
        )

    async def submit_trade(
        self,
        signer: LocalAccount,
        market: MarketIdentifier,
        amount,
        limit_price,
        is_close_only: bool = False,
        gas_price: Optional[object] = None,
        gas_limit: Optional[int] = None,
        perpetual_count: Optional[int] = None,
    ) -> TradeHandle:
        """
        Sign and broadcast a trade.

        Args:
            signer: eth_account signer; the trade is made for its address
            market: target perpetual
            amount: signed human amount, negative means sell
            limit_price: human limit price
            is_close_only: only reduce an existing position
            gas_price: gas price in gwei; the node's price when None
            gas_limit: explicit gas limit; estimated from perpetual_count when None
            perpetual_count: number of perpetuals in the target pool
        """
        # validation happens before any network call
        fixed_amount(amount)
        _fixed_limit_price(limit_price)
        if gas_limit is None:
            gas_limit = self.estimate_gas_limit(perpetual_count)
        gas_price_wei = _gwei_to_wei(gas_price) if gas_price is not None else None

        if gas_price_wei is None:
            try:
                gas_price_wei = await self.chain.gas_price()
            except Exception as exc:
                raise TradeSubmissionError(reason="Fetch gas price failed", detail=revert_reason(exc)) from exc

        intent = self.build_intent(
            signer.address, market, amount, limit_price, is_close_only, gas_price_wei, gas_limit,
        )
        try:
            tx_hash = await self.chain.send_trade(signer, intent)
        except Exception as exc:
            log_event(
                log, "trade_failed", level=logging.ERROR,
                pool=market.pool_address, perpetual_index=market.perpetual_index, err=revert_reason(exc),
            )
            raise TradeSubmissionError(detail=revert_reason(exc)) from exc

        log_event(
            log, "trade_submitted",
            pool=market.pool_address, perpetual_index=market.perpetual_index,
            amount=str(amount), flags=int(intent.flags), deadline=intent.deadline,
            gas_limit=gas_limit, tx_hash=tx_hash,
        )
        if self.metrics is not None:
            self.metrics.trades_submitted.labels(side="sell" if intent.amount < 0 else "buy").inc()
        return TradeHandle(tx_hash=tx_hash, intent=intent)


def _fixed_limit_price(limit_price) -> int:
    try:
        return to_fixed(limit_price)
    except ValueError as exc:
        raise InvalidAmountError(reason='Invalid "limitPrice"', detail=str(exc)) from exc


def _gwei_to_wei(gas_price) -> int:
    try:
        gwei = parse_decimal(gas_price)
    except ValueError as exc:
        raise InvalidAmountError(reason='Invalid "gasPrice"', detail=str(exc)) from exc
    if gwei < 0:
        raise InvalidAmountError(reason='Invalid "gasPrice"', detail="gas price must be >= 0")
    try:
        return int(Web3.to_wei(Decimal(gwei), "gwei"))
    except (ValueError, ArithmeticError) as exc:
        raise InvalidAmountError(reason='Invalid "gasPrice"', detail=str(exc)) from exc
