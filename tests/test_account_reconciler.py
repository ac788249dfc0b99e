"""
Tests for AccountReconciler.

The invariant under test: the indexer's entry basis is adopted only when its
recorded position equals the on-chain position exactly, and the indexer never
changes position or cash.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from perp_gateway.core.errors import AccountReadError, PoolReadError
from perp_gateway.core.types import IndexedAccountRecord, MarketIdentifier, RawAccountStorage
from perp_gateway.execution.account_reconciler import AccountReconciler, reconcile_storage
from perp_gateway.infra.indexer_client import IndexerResult
from perp_gateway.market.state_reader import StateReader
from perp_gateway.monitoring.metrics import GatewayMetrics

from conftest import POOL, TRADER, account_tuple

MARKET = MarketIdentifier(POOL, 0)


def _indexer(result: IndexerResult, enabled: bool = True):
    mock = MagicMock()
    mock.enabled = enabled
    mock.margin_account = AsyncMock(return_value=result)
    return mock


def _record(position: str) -> IndexedAccountRecord:
    return IndexedAccountRecord(position=Decimal(position), entry_value=Decimal("4500"), entry_funding=Decimal("0.3"))


class TestReconcileStorage:

    RAW = RawAccountStorage(cash_balance=Decimal("-4000"), position_amount=Decimal("1.5"))

    def test_equal_positions_adopt_entry_basis(self):
        outcome = reconcile_storage(self.RAW, _record("1.5"))
        assert outcome.adopted is True
        assert outcome.storage.entry_value == Decimal("4500")
        assert outcome.storage.entry_funding == Decimal("0.3")
        assert outcome.storage.position_amount == self.RAW.position_amount
        assert outcome.storage.cash_balance == self.RAW.cash_balance

    def test_equality_ignores_representation(self):
        assert reconcile_storage(self.RAW, _record("1.500000000000000000")).adopted is True

    @pytest.mark.parametrize("indexed", ["1.4", "1.500000000000000001", "0", "-1.5"])
    def test_any_mismatch_keeps_chain_view(self, indexed):
        outcome = reconcile_storage(self.RAW, _record(indexed))
        assert outcome.adopted is False
        assert outcome.reason == "position_mismatch"
        assert outcome.storage is self.RAW
        assert outcome.storage.entry_value is None

    def test_no_record(self):
        outcome = reconcile_storage(self.RAW, None)
        assert outcome.storage is self.RAW
        assert outcome.reason == "no_record"


class TestGetAccount:

    @pytest.fixture
    def reader(self, chain):
        chain.query_account_storage = AsyncMock(return_value=account_tuple(cash="-4000", position="1.5"))
        return StateReader(chain)

    @pytest.mark.asyncio
    async def test_adopts_when_positions_match(self, reader):
        metrics = GatewayMetrics()
        reconciler = AccountReconciler(reader, _indexer(IndexerResult(success=True, data=_record("1.5"))), metrics=metrics)
        account = await reconciler.get_account(TRADER, MARKET)
        assert account.reconciled is True
        assert account.position == Decimal("1.5")
        assert account.computed.entry_price == Decimal("3000")
        assert metrics.get_registry().get_sample_value(
            "account_reconciliations_total", {"outcome": "adopted"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_mismatch_leaves_entry_fields_unset(self, reader):
        reconciler = AccountReconciler(reader, _indexer(IndexerResult(success=True, data=_record("2"))))
        account = await reconciler.get_account(TRADER, MARKET)
        assert account.reconciled is False
        assert account.position == Decimal("1.5")
        assert account.computed.entry_price is None
        assert account.computed.funding_pnl is None
        assert account.computed.pnl is None

    @pytest.mark.asyncio
    async def test_indexer_failure_is_swallowed(self, reader):
        indexer = _indexer(IndexerResult(success=False, error="timeout"))
        account = await AccountReconciler(reader, indexer).get_account(TRADER, MARKET)
        assert account.reconciled is False
        assert account.computed.margin_balance == Decimal("500")

    @pytest.mark.asyncio
    async def test_disabled_indexer_is_not_called(self, reader):
        indexer = _indexer(IndexerResult(success=True, data=_record("1.5")), enabled=False)
        account = await AccountReconciler(reader, indexer).get_account(TRADER, MARKET)
        assert account.reconciled is False
        indexer.margin_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_indexer_keyed_by_trader_and_market(self, reader):
        indexer = _indexer(IndexerResult(success=True, data=None))
        await AccountReconciler(reader, indexer).get_account(TRADER, MARKET)
        indexer.margin_account.assert_awaited_once_with(TRADER, POOL, 0)

    @pytest.mark.asyncio
    async def test_pool_failure_fails_the_read(self, chain, reader):
        chain.query_liquidity_pool = AsyncMock(side_effect=ConnectionError("down"))
        indexer = _indexer(IndexerResult(success=True, data=None))
        with pytest.raises(PoolReadError):
            await AccountReconciler(reader, indexer).get_account(TRADER, MARKET)
        indexer.margin_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_account_failure_fails_the_read(self, chain, reader):
        chain.query_account_storage = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(AccountReadError):
            await AccountReconciler(reader, _indexer(IndexerResult(success=True))).get_account(TRADER, MARKET)

    @pytest.mark.asyncio
    async def test_chain_reads_run_concurrently(self, chain, reader):
        started = []
        release = asyncio.Event()
        pool_result = chain.query_liquidity_pool.return_value
        account_result = chain.query_account_storage.return_value

        async def slow_pool(*args):
            started.append("pool")
            await release.wait()
            return pool_result

        async def slow_account(*args):
            started.append("account")
            release.set()
            return account_result

        chain.query_liquidity_pool = AsyncMock(side_effect=slow_pool)
        chain.query_account_storage = AsyncMock(side_effect=slow_account)
        indexer = _indexer(IndexerResult(success=True, data=None))
        account = await asyncio.wait_for(AccountReconciler(reader, indexer).get_account(TRADER, MARKET), timeout=2)
        assert set(started) == {"pool", "account"}
        assert account.position == Decimal("1.5")

    @pytest.mark.asyncio
    async def test_uses_injected_computation(self, reader):
        seen = {}

        def compute(pool, index, storage):
            seen["storage"] = storage
            return MagicMock()

        indexer = _indexer(IndexerResult(success=True, data=_record("1.5")))
        await AccountReconciler(reader, indexer, compute=compute).get_account(TRADER, MARKET)
        assert seen["storage"].entry_value == Decimal("4500")
