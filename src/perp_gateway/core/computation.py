"""
Pure account computation over a pool snapshot and one trader's storage.

No I/O; given the same inputs it always returns the same ComputedAccount.
"""

from __future__ import annotations

from decimal import Decimal

from perp_gateway.core.errors import PerpetualIndexOutOfBoundsError
from perp_gateway.core.types import ComputedAccount, PoolSnapshot, RawAccountStorage

_ZERO = Decimal(0)


def compute_account(pool: PoolSnapshot, perpetual_index: int, storage: RawAccountStorage) -> ComputedAccount:
    perpetual = pool.perpetual(perpetual_index)
    if perpetual is None:
        raise PerpetualIndexOutOfBoundsError(detail=f"index={perpetual_index} count={pool.perpetual_count}")

    position = storage.position_amount
    mark = perpetual.mark_price
    abs_position = abs(position)

    available_cash = storage.cash_balance - position * perpetual.unit_accumulative_funding
    margin_balance = available_cash + position * mark
    position_margin = abs_position * mark * perpetual.initial_margin_rate
    reserved_cash = perpetual.keeper_gas_reward if position != 0 else _ZERO
    available_margin = max(_ZERO, margin_balance - position_margin - reserved_cash)

    liquidation_price = _ZERO
    if position != 0:
        # available_cash + position * p == |position| * p * mm_rate + keeper_gas_reward
        denominator = position - abs_position * perpetual.maintenance_margin_rate
        if denominator != 0:
            liquidation_price = max(_ZERO, (perpetual.keeper_gas_reward - available_cash) / denominator)

    entry_price = None
    pnl = None
    if storage.entry_value is not None:
        pnl = position * mark - storage.entry_value
        if position != 0:
            entry_price = storage.entry_value / position

    funding_pnl = None
    if storage.entry_funding is not None:
        funding_pnl = storage.entry_funding - position * perpetual.unit_accumulative_funding

    return ComputedAccount(
        margin_balance=margin_balance,
        available_margin=available_margin,
        liquidation_price=liquidation_price,
        available_cash_balance=available_cash,
        entry_price=entry_price,
        funding_pnl=funding_pnl,
        pnl=pnl,
    )
