"""
Blocking web3 bindings for the reader, symbol service and liquidity pool contracts.

All methods here block on JSON-RPC; async callers go through AsyncChain.
"""

from __future__ import annotations

from typing import Any, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound

from perp_gateway.config.networks import NetworkConfig
from perp_gateway.core.types import TradeIntent
from perp_gateway.infra.abi import LIQUIDITY_POOL_ABI, READER_ABI, SYMBOL_SERVICE_ABI


def revert_data(exc: BaseException) -> Optional[str]:
    """Find the raw hex revert payload carried by a web3/RPC exception, if any."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        candidates = [getattr(current, "data", None)]
        rpc = getattr(current, "rpc_response", None)
        if isinstance(rpc, dict):
            candidates.append(rpc.get("error"))
        candidates.extend(a for a in current.args if isinstance(a, dict))
        for cand in candidates:
            found = _data_from(cand)
            if found:
                return found
        current = current.__cause__ or current.__context__
    return None


def _data_from(value: Any, depth: int = 0) -> Optional[str]:
    if depth > 4 or value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        return value if value.startswith("0x") else None
    if isinstance(value, dict):
        for key in ("data", "error", "originalError"):
            found = _data_from(value.get(key), depth + 1)
            if found:
                return found
    return None


def revert_reason(exc: BaseException) -> str:
    """Best human-readable reason for a contract or RPC failure."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    rpc = getattr(exc, "rpc_response", None)
    if isinstance(rpc, dict) and isinstance(rpc.get("error"), dict):
        msg = rpc["error"].get("message")
        if msg:
            return str(msg)
    for arg in exc.args:
        if isinstance(arg, dict) and arg.get("message"):
            return str(arg["message"])
    return str(exc) or type(exc).__name__


class ChainClient:
    def __init__(self, network: NetworkConfig, rpc_url: str, timeout: float = 10.0, w3: Optional[Web3] = None) -> None:
        self.network = network
        self.rpc_url = rpc_url
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.reader = self.w3.eth.contract(address=network.reader_address, abi=READER_ABI)
        self.symbol_service = self.w3.eth.contract(address=network.symbol_registry_address, abi=SYMBOL_SERVICE_ABI)

    def query_liquidity_pool(self, pool_address: str) -> Any:
        return self.reader.functions.queryLiquidityPool(Web3.to_checksum_address(pool_address)).call()

    def query_account_storage(self, pool_address: str, perpetual_index: int, trader: str) -> Any:
        return self.reader.functions.queryAccountStorage(
            Web3.to_checksum_address(pool_address),
            perpetual_index,
            Web3.to_checksum_address(trader),
        ).call()

    def query_trade(
        self,
        pool_address: str,
        perpetual_index: int,
        trader: str,
        amount: int,
        referer: str,
        flags: int,
    ) -> Any:
        # eth_call only: simulated against the latest block, nothing is broadcast
        return self.reader.functions.queryTrade(
            Web3.to_checksum_address(pool_address),
            perpetual_index,
            Web3.to_checksum_address(trader),
            amount,
            Web3.to_checksum_address(referer),
            int(flags),
        ).call()

    def get_perpetual_uid(self, symbol: int) -> Any:
        return self.symbol_service.functions.getPerpetualUID(symbol).call()

    def gas_price(self) -> int:
        return int(self.w3.eth.gas_price)

    def send_trade(self, signer: LocalAccount, intent: TradeIntent) -> str:
        pool = self.w3.eth.contract(
            address=Web3.to_checksum_address(intent.market.pool_address),
            abi=LIQUIDITY_POOL_ABI,
        )
        nonce = self.w3.eth.get_transaction_count(signer.address, "pending")
        tx = pool.functions.trade(
            intent.market.perpetual_index,
            Web3.to_checksum_address(intent.trader_address),
            intent.amount,
            intent.limit_price,
            intent.deadline,
            Web3.to_checksum_address(intent.referer),
            int(intent.flags),
        ).build_transaction({
            "from": signer.address,
            "chainId": self.network.chain_id,
            "nonce": nonce,
            "gas": intent.gas_limit,
            "gasPrice": intent.gas_price,
        })
        signed = signer.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Any]:
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def block_number(self) -> int:
        return int(self.w3.eth.block_number)
