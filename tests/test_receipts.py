"""
Tests for ReceiptTracker.
"""

from unittest.mock import AsyncMock

import pytest

from perp_gateway.core.errors import ReceiptLookupError
from perp_gateway.execution.receipts import ReceiptTracker

TX = "0x" + "ab" * 32


@pytest.mark.asyncio
async def test_pending_transaction(chain):
    status = await ReceiptTracker(chain).get_receipt(TX)
    assert status.confirmed is False
    assert status.block_number is None
    chain.block_number.assert_not_awaited()


@pytest.mark.asyncio
async def test_receipt_without_block_is_pending(chain):
    chain.get_transaction_receipt = AsyncMock(return_value={"blockNumber": None, "status": None})
    status = await ReceiptTracker(chain).get_receipt(TX)
    assert status.confirmed is False


@pytest.mark.asyncio
async def test_mined_transaction(chain):
    chain.get_transaction_receipt = AsyncMock(return_value={"blockNumber": 95, "status": 1, "gasUsed": 312_004})
    status = await ReceiptTracker(chain).get_receipt(TX)
    assert status.confirmed is True
    assert status.block_number == 95
    assert status.confirmations == 6
    assert status.status == 1
    assert status.gas_used == 312_004


@pytest.mark.asyncio
async def test_lagging_head_still_counts_one_confirmation(chain):
    chain.get_transaction_receipt = AsyncMock(return_value={"blockNumber": 101, "status": 0})
    status = await ReceiptTracker(chain).get_receipt(TX)
    assert status.confirmations == 1
    assert status.status == 0
    assert status.gas_used is None


@pytest.mark.asyncio
@pytest.mark.parametrize("tx_hash", ["", "0x1234", "ab" * 32, "0x" + "zz" * 32])
async def test_malformed_hash(chain, tx_hash):
    with pytest.raises(ReceiptLookupError) as exc_info:
        await ReceiptTracker(chain).get_receipt(tx_hash)
    assert exc_info.value.reason == 'Invalid "txHash"'
    chain.get_transaction_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_rpc_failure(chain):
    chain.get_transaction_receipt = AsyncMock(side_effect=ConnectionError("rpc down"))
    with pytest.raises(ReceiptLookupError) as exc_info:
        await ReceiptTracker(chain).get_receipt(TX)
    assert exc_info.value.detail == "rpc down"


@pytest.mark.asyncio
async def test_lookup_is_repeatable(chain):
    chain.get_transaction_receipt = AsyncMock(return_value={"blockNumber": 100, "status": 1})
    tracker = ReceiptTracker(chain)
    first = await tracker.get_receipt(TX)
    second = await tracker.get_receipt(TX)
    assert first == second
