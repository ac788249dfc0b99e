"""
StateReader: batched on-chain reads of pool and account storage.

Every call goes to the reader contract fresh; nothing is cached between
requests. Fixed-point fields are converted to Decimal on the way in.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from perp_gateway.core.errors import AccountReadError, PerpetualIndexOutOfBoundsError, PoolReadError
from perp_gateway.core.fixed_point import from_fixed
from perp_gateway.core.types import (
    MarketIdentifier,
    MarketView,
    PerpetualSnapshot,
    PerpetualState,
    PoolSnapshot,
    RawAccountStorage,
)
from perp_gateway.infra.chain import revert_reason

log = logging.getLogger("perp_gateway")


def is_tradable(pool: PoolSnapshot, perpetual: PerpetualSnapshot) -> bool:
    """A market accepts trades only when all four conditions hold."""
    return (
        pool.is_synced
        and pool.is_running
        and perpetual.state == PerpetualState.NORMAL
        and not perpetual.is_market_closed
    )


class StateReader:
    def __init__(self, chain) -> None:
        self.chain = chain

    async def read_pool(self, pool_address: str) -> PoolSnapshot:
        try:
            raw = await self.chain.query_liquidity_pool(pool_address)
        except Exception as exc:
            raise PoolReadError(detail=revert_reason(exc)) from exc
        try:
            return decode_pool(raw)
        except (TypeError, ValueError, IndexError) as exc:
            raise PoolReadError(detail=f"unexpected reader result for {pool_address}: {exc}") from exc

    async def read_account(self, pool_address: str, perpetual_index: int, trader: str) -> RawAccountStorage:
        try:
            raw = await self.chain.query_account_storage(pool_address, perpetual_index, trader)
        except Exception as exc:
            raise AccountReadError(detail=revert_reason(exc)) from exc
        try:
            return decode_account(raw)
        except (TypeError, ValueError, IndexError) as exc:
            raise AccountReadError(detail=f"unexpected reader result for {trader}: {exc}") from exc

    async def get_market(self, market: MarketIdentifier) -> MarketView:
        pool = await self.read_pool(market.pool_address)
        perpetual = pool.perpetual(market.perpetual_index)
        if perpetual is None:
            log.error(
                "PerpetualIndex is out of bounds: pool=%s index=%s count=%s",
                market.pool_address, market.perpetual_index, pool.perpetual_count,
            )
            raise PerpetualIndexOutOfBoundsError(
                detail=f"index={market.perpetual_index} count={pool.perpetual_count}"
            )
        return MarketView(
            market=market,
            collateral_address=pool.collateral_address,
            is_tradable=is_tradable(pool, perpetual),
            underlying_symbol=perpetual.underlying_symbol,
            index_price=perpetual.index_price,
            mark_price=perpetual.mark_price,
            funding_rate=perpetual.funding_rate,
            unit_accumulative_funding=perpetual.unit_accumulative_funding,
            vault_fee_rate=pool.vault_fee_rate,
            operator_fee_rate=perpetual.operator_fee_rate,
            lp_fee_rate=perpetual.lp_fee_rate,
            perpetual_count=pool.perpetual_count,
        )


def decode_pool(raw: Sequence[Any]) -> PoolSnapshot:
    is_synced, pool = raw
    is_running, collateral, vault_fee_rate, perpetuals = pool
    return PoolSnapshot(
        collateral_address=str(collateral),
        is_synced=bool(is_synced),
        is_running=bool(is_running),
        vault_fee_rate=from_fixed(vault_fee_rate),
        perpetuals=tuple(_decode_perpetual(p) for p in perpetuals),
    )


def _decode_perpetual(raw: Sequence[Any]) -> PerpetualSnapshot:
    (
        state,
        is_market_closed,
        underlying_symbol,
        index_price,
        mark_price,
        funding_rate,
        unit_accumulative_funding,
        operator_fee_rate,
        lp_fee_rate,
        initial_margin_rate,
        maintenance_margin_rate,
        keeper_gas_reward,
    ) = raw
    return PerpetualSnapshot(
        state=PerpetualState(int(state)),
        is_market_closed=bool(is_market_closed),
        underlying_symbol=str(underlying_symbol),
        index_price=from_fixed(index_price),
        mark_price=from_fixed(mark_price),
        funding_rate=from_fixed(funding_rate),
        unit_accumulative_funding=from_fixed(unit_accumulative_funding),
        operator_fee_rate=from_fixed(operator_fee_rate),
        lp_fee_rate=from_fixed(lp_fee_rate),
        initial_margin_rate=from_fixed(initial_margin_rate),
        maintenance_margin_rate=from_fixed(maintenance_margin_rate),
        keeper_gas_reward=from_fixed(keeper_gas_reward),
    )


def decode_account(raw: Sequence[Any]) -> RawAccountStorage:
    _is_synced, storage = raw
    cash, position, target_leverage = storage
    return RawAccountStorage(
        cash_balance=from_fixed(cash),
        position_amount=from_fixed(position),
        target_leverage=from_fixed(target_leverage),
    )
