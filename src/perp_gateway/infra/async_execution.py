"""
Async wrapper around the blocking ChainClient using a shared thread pool.
Every call is bounded by a timeout; reads retry on transport errors only.
"""

from __future__ import annotations

import asyncio
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from eth_account.signers.local import LocalAccount
from web3.exceptions import ContractLogicError

from perp_gateway.core.types import TradeIntent
from perp_gateway.infra.logging_cfg import log_event

log = logging.getLogger("perp_gateway")


class AsyncChain:
    def __init__(self, chain, timeout: float = 10.0, max_workers: int = 8, read_retries: int = 1) -> None:
        self._chain = chain
        self._timeout = timeout
        self._read_retries = read_retries
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rpc-exec")

    @property
    def chain(self):
        return self._chain

    async def query_liquidity_pool(self, pool_address: str) -> Any:
        return await self._call(lambda: self._chain.query_liquidity_pool(pool_address))

    async def query_account_storage(self, pool_address: str, perpetual_index: int, trader: str) -> Any:
        return await self._call(lambda: self._chain.query_account_storage(pool_address, perpetual_index, trader))

    async def query_trade(self, *args) -> Any:
        return await self._call(lambda: self._chain.query_trade(*args))

    async def get_perpetual_uid(self, symbol: int) -> Any:
        return await self._call(lambda: self._chain.get_perpetual_uid(symbol))

    async def gas_price(self) -> int:
        return await self._call(self._chain.gas_price)

    async def send_trade(self, signer: LocalAccount, intent: TradeIntent) -> str:
        # never retried: a second attempt could double-submit
        return await self._call(lambda: self._chain.send_trade(signer, intent), retries=0)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Any]:
        return await self._call(lambda: self._chain.get_transaction_receipt(tx_hash))

    async def block_number(self) -> int:
        return await self._call(self._chain.block_number)

    async def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    async def _call(self, fn, retries: Optional[int] = None) -> Any:
        if retries is None:
            retries = self._read_retries
        loop = asyncio.get_running_loop()
        backoff = 0.2
        for attempt in range(retries + 1):
            try:
                return await asyncio.wait_for(loop.run_in_executor(self._executor, fn), timeout=self._timeout)
            except (ContractLogicError, ValueError):
                # reverts and rejected arguments fail the same way on every attempt
                raise
            except Exception as exc:
                if attempt >= retries:
                    raise
                log_event(log, "rpc_retry", level=logging.WARNING, attempt=attempt + 1, err=str(exc))
                await asyncio.sleep(backoff + random.uniform(0, backoff * 0.5))
                backoff *= 2
