"""
Domain types shared by the resolver, reader, reconciler and trade path.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class PerpetualState(enum.IntEnum):
    INVALID = 0
    INITIALIZING = 1
    NORMAL = 2
    EMERGENCY = 3
    CLEARED = 4


class TradeFlag(enum.IntFlag):
    """Trade modifier bits understood by the pool contract."""
    NONE = 0
    USE_TARGET_LEVERAGE = 0x08000000
    TAKE_PROFIT_ORDER = 0x10000000
    STOP_LOSS_ORDER = 0x20000000
    MARKET_ORDER = 0x40000000
    CLOSE_ONLY = 0x80000000


def trade_flags(is_close_only: bool) -> TradeFlag:
    flags = TradeFlag.USE_TARGET_LEVERAGE
    if is_close_only:
        flags |= TradeFlag.CLOSE_ONLY
    return flags


@dataclass(frozen=True)
class MarketIdentifier:
    pool_address: str
    perpetual_index: int


@dataclass(frozen=True)
class PerpetualSnapshot:
    state: PerpetualState
    is_market_closed: bool
    underlying_symbol: str
    index_price: Decimal
    mark_price: Decimal
    funding_rate: Decimal
    unit_accumulative_funding: Decimal
    operator_fee_rate: Decimal
    lp_fee_rate: Decimal
    initial_margin_rate: Decimal = Decimal(0)
    maintenance_margin_rate: Decimal = Decimal(0)
    keeper_gas_reward: Decimal = Decimal(0)


@dataclass(frozen=True)
class PoolSnapshot:
    """Read replica of liquidity pool storage at the latest synced block."""
    collateral_address: str
    is_synced: bool
    is_running: bool
    vault_fee_rate: Decimal
    perpetuals: Tuple[PerpetualSnapshot, ...]

    @property
    def perpetual_count(self) -> int:
        return len(self.perpetuals)

    def perpetual(self, index: int) -> Optional[PerpetualSnapshot]:
        if 0 <= index < len(self.perpetuals):
            return self.perpetuals[index]
        return None


@dataclass(frozen=True)
class RawAccountStorage:
    cash_balance: Decimal
    position_amount: Decimal
    target_leverage: Decimal = Decimal(0)
    # not observable on chain; only the indexer can fill these in
    entry_value: Optional[Decimal] = None
    entry_funding: Optional[Decimal] = None


@dataclass(frozen=True)
class IndexedAccountRecord:
    position: Decimal
    entry_value: Decimal
    entry_funding: Decimal


@dataclass(frozen=True)
class ComputedAccount:
    margin_balance: Decimal
    available_margin: Decimal
    liquidation_price: Decimal
    available_cash_balance: Decimal
    entry_price: Optional[Decimal] = None
    funding_pnl: Optional[Decimal] = None
    pnl: Optional[Decimal] = None


@dataclass(frozen=True)
class MarketView:
    market: MarketIdentifier
    collateral_address: str
    is_tradable: bool
    underlying_symbol: str
    index_price: Decimal
    mark_price: Decimal
    funding_rate: Decimal
    unit_accumulative_funding: Decimal
    vault_fee_rate: Decimal
    operator_fee_rate: Decimal
    lp_fee_rate: Decimal
    perpetual_count: int

    @property
    def perpetual_index(self) -> int:
        return self.market.perpetual_index


@dataclass(frozen=True)
class AccountView:
    market: MarketIdentifier
    trader_address: str
    position: Decimal
    computed: ComputedAccount
    reconciled: bool = False


@dataclass(frozen=True)
class Quote:
    price: Decimal
    total_fee: Decimal
    cost: Decimal


@dataclass(frozen=True)
class TradeIntent:
    market: MarketIdentifier
    trader_address: str
    amount: int
    limit_price: int
    is_close_only: bool
    deadline: int
    referer: str
    flags: TradeFlag
    gas_price: int
    gas_limit: int


@dataclass(frozen=True)
class TradeHandle:
    tx_hash: str
    intent: TradeIntent


@dataclass(frozen=True)
class ReceiptStatus:
    tx_hash: str
    confirmed: bool
    block_number: Optional[int] = None
    confirmations: Optional[int] = None
    status: Optional[int] = None
    gas_used: Optional[int] = None
