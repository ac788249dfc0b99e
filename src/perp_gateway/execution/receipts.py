"""
Poll-based confirmation lookup for submitted trades. Idempotent, safe to retry.
"""

from __future__ import annotations

import re

from perp_gateway.core.errors import ReceiptLookupError
from perp_gateway.core.types import ReceiptStatus
from perp_gateway.infra.chain import revert_reason

_TX_HASH = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ReceiptTracker:
    def __init__(self, chain) -> None:
        self.chain = chain

    async def get_receipt(self, tx_hash: str) -> ReceiptStatus:
        if not tx_hash or not _TX_HASH.match(tx_hash):
            raise ReceiptLookupError(reason='Invalid "txHash"', detail=f"{tx_hash!r} is not a transaction hash")
        try:
            receipt = await self.chain.get_transaction_receipt(tx_hash)
            if receipt is None or receipt.get("blockNumber") is None:
                return ReceiptStatus(tx_hash=tx_hash, confirmed=False)
            head = await self.chain.block_number()
        except Exception as exc:
            raise ReceiptLookupError(detail=revert_reason(exc)) from exc

        block_number = int(receipt["blockNumber"])
        status = receipt.get("status")
        gas_used = receipt.get("gasUsed")
        return ReceiptStatus(
            tx_hash=tx_hash,
            confirmed=True,
            block_number=block_number,
            confirmations=max(1, head - block_number + 1),
            status=int(status) if status is not None else None,
            gas_used=int(gas_used) if gas_used is not None else None,
        )
