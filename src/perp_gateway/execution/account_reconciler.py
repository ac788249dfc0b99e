"""
AccountReconciler: merges live on-chain account storage with the indexer.

The chain is the source of truth for position and cash. The indexer knows the
entry basis (entry value / entry funding) that the chain does not store, but it
can lag the chain head. Its entry fields are adopted only when its recorded
position equals the on-chain position exactly; otherwise the on-chain view is
used unmodified.

Flow:
    1. pool snapshot and account storage are read concurrently
    2. the indexer record is fetched best-effort (IndexerResult, never raises)
    3. entry fields are copied over iff positions match
    4. the pure account computation runs on the result
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from perp_gateway.core.computation import compute_account
from perp_gateway.core.types import (
    AccountView,
    ComputedAccount,
    IndexedAccountRecord,
    MarketIdentifier,
    PoolSnapshot,
    RawAccountStorage,
)
from perp_gateway.infra.indexer_client import IndexerClient
from perp_gateway.infra.logging_cfg import log_event
from perp_gateway.market.state_reader import StateReader

log = logging.getLogger("perp_gateway")

ComputeFn = Callable[[PoolSnapshot, int, RawAccountStorage], ComputedAccount]


@dataclass
class ReconcileOutcome:
    """Which account storage was used, and why."""
    storage: RawAccountStorage
    adopted: bool
    reason: str  # adopted | position_mismatch | no_record | indexer_unavailable


def reconcile_storage(
    raw: RawAccountStorage,
    record: Optional[IndexedAccountRecord],
) -> ReconcileOutcome:
    """Apply the indexer's entry basis to `raw` only when positions agree exactly."""
    if record is None:
        return ReconcileOutcome(storage=raw, adopted=False, reason="no_record")
    if record.position != raw.position_amount:
        return ReconcileOutcome(storage=raw, adopted=False, reason="position_mismatch")
    merged = dataclasses.replace(raw, entry_value=record.entry_value, entry_funding=record.entry_funding)
    return ReconcileOutcome(storage=merged, adopted=True, reason="adopted")


class AccountReconciler:
    def __init__(
        self,
        state_reader: StateReader,
        indexer: IndexerClient,
        compute: ComputeFn = compute_account,
        metrics=None,
    ) -> None:
        self.state_reader = state_reader
        self.indexer = indexer
        self.compute = compute
        self.metrics = metrics

    async def get_account(self, trader_address: str, market: MarketIdentifier) -> AccountView:
        pool, raw = await asyncio.gather(
            self.state_reader.read_pool(market.pool_address),
            self.state_reader.read_account(market.pool_address, market.perpetual_index, trader_address),
        )

        outcome = await self._reconcile(trader_address, market, raw)
        computed = self.compute(pool, market.perpetual_index, outcome.storage)

        return AccountView(
            market=market,
            trader_address=trader_address,
            position=outcome.storage.position_amount,
            computed=computed,
            reconciled=outcome.adopted,
        )

    async def _reconcile(
        self,
        trader_address: str,
        market: MarketIdentifier,
        raw: RawAccountStorage,
    ) -> ReconcileOutcome:
        if not self.indexer.enabled:
            outcome = ReconcileOutcome(storage=raw, adopted=False, reason="indexer_unavailable")
        else:
            result = await self.indexer.margin_account(trader_address, market.pool_address, market.perpetual_index)
            if not result.success:
                log_event(
                    log, "reconcile_skipped", level=logging.WARNING,
                    pool=market.pool_address, err=result.error,
                )
                outcome = ReconcileOutcome(storage=raw, adopted=False, reason="indexer_unavailable")
            else:
                outcome = reconcile_storage(raw, result.data)

        if outcome.reason == "position_mismatch":
            log_event(
                log, "reconcile_position_mismatch", level=logging.INFO,
                pool=market.pool_address, perpetual_index=market.perpetual_index,
                chain_position=raw.position_amount,
            )
        if self.metrics is not None:
            self.metrics.reconciliations.labels(outcome=outcome.reason).inc()
        return outcome
