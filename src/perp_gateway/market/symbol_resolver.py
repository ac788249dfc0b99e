"""
Symbol -> market identifier resolution.

Markets are looked up on the symbol service contract; the symbol listing comes
from the indexer because the contract cannot enumerate its keys.
"""

from __future__ import annotations

import logging
from typing import List

from web3 import Web3

from perp_gateway.core.errors import IndexerUnavailableError, SymbolNotFoundError
from perp_gateway.core.types import ZERO_ADDRESS, MarketIdentifier
from perp_gateway.infra.chain import revert_reason
from perp_gateway.infra.indexer_client import IndexerClient

log = logging.getLogger("perp_gateway")

ALL_SYMBOLS_QUERY = """
{
  perpetuals {
    symbol
  }
}
"""


class SymbolResolver:
    def __init__(self, chain, indexer: IndexerClient) -> None:
        self.chain = chain
        self.indexer = indexer

    async def resolve(self, symbol: str) -> MarketIdentifier:
        key = _symbol_key(symbol)
        try:
            pool_address, perpetual_index = await self.chain.get_perpetual_uid(key)
        except Exception as exc:
            raise SymbolNotFoundError(detail=revert_reason(exc)) from exc

        if not Web3.is_address(pool_address) or pool_address.lower() == ZERO_ADDRESS:
            raise SymbolNotFoundError(detail=f"no market registered for symbol {symbol}")
        index = int(perpetual_index)
        if index < 0:
            raise SymbolNotFoundError(detail=f"registry returned negative perpetual index {index}")
        return MarketIdentifier(pool_address=Web3.to_checksum_address(pool_address), perpetual_index=index)

    async def list_symbols(self) -> List[str]:
        data = await self.indexer.query(ALL_SYMBOLS_QUERY)
        perpetuals = data.get("perpetuals")
        if not isinstance(perpetuals, list):
            raise IndexerUnavailableError(detail="perpetuals missing from response")
        symbols = []
        for item in perpetuals:
            if not isinstance(item, dict) or item.get("symbol") is None:
                raise IndexerUnavailableError(detail="perpetual entry without symbol")
            symbols.append(str(item["symbol"]))
        return symbols


def _symbol_key(symbol: str) -> int:
    # symbols are zero-padded decimal numbers, e.g. "00001"
    raw = (symbol or "").strip()
    if not raw:
        raise SymbolNotFoundError(reason='Missing "symbol"')
    if not (raw.isascii() and raw.isdigit()):
        raise SymbolNotFoundError(detail=f"malformed symbol {symbol!r}")
    return int(raw)
