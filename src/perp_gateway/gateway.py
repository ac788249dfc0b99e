"""
Gateway: the string-in / string-out surface handed to the HTTP or CLI layer.

All numeric inputs and outputs here are human decimal strings; fixed-point
conversion stays inside the components. Components are built once from an
explicit Settings/NetworkConfig and shared read-only across requests.
"""

from __future__ import annotations

import contextlib
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from perp_gateway.config.config import Settings
from perp_gateway.config.networks import NetworkConfig, network_from_settings
from perp_gateway.core.errors import GatewayError, InvalidTraderError
from perp_gateway.core.fixed_point import format_decimal
from perp_gateway.core.types import AccountView, MarketView, Quote, ReceiptStatus
from perp_gateway.execution.account_reconciler import AccountReconciler
from perp_gateway.execution.quote_engine import QuoteEngine, fixed_amount
from perp_gateway.execution.receipts import ReceiptTracker
from perp_gateway.execution.trade_builder import TradeBuilder
from perp_gateway.infra.async_execution import AsyncChain
from perp_gateway.infra.chain import ChainClient
from perp_gateway.infra.indexer_client import IndexerClient
from perp_gateway.infra.logging_cfg import log_event
from perp_gateway.market.state_reader import StateReader
from perp_gateway.market.symbol_resolver import SymbolResolver
from perp_gateway.monitoring.metrics import GatewayMetrics

log = logging.getLogger("perp_gateway")


def resolve_trader(private_key_or_address: Optional[str]) -> str:
    """Checksummed trader address from either an address or a private key."""
    value = (private_key_or_address or "").strip()
    if not value:
        raise InvalidTraderError(detail="missing private key or address")
    if Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return resolve_signer(value).address


def resolve_signer(private_key: Optional[str]) -> LocalAccount:
    if not private_key:
        raise InvalidTraderError(detail="missing private key")
    try:
        return Account.from_key(private_key.strip())
    except Exception as exc:
        # never echo the key itself
        raise InvalidTraderError(detail=f"invalid private key ({type(exc).__name__})") from None


class Gateway:
    def __init__(
        self,
        settings: Settings,
        network: NetworkConfig,
        chain,
        indexer: IndexerClient,
        metrics: Optional[GatewayMetrics] = None,
        clock=time.time,
    ) -> None:
        self.settings = settings
        self.network = network
        self.chain = chain
        self.indexer = indexer
        self.metrics = metrics or GatewayMetrics()

        self.symbols = SymbolResolver(chain, indexer)
        self.state_reader = StateReader(chain)
        self.reconciler = AccountReconciler(self.state_reader, indexer, metrics=self.metrics)
        self.quotes = QuoteEngine(chain)
        self.trades = TradeBuilder(
            chain,
            gas_base=settings.trade_gas_base,
            gas_per_perpetual=settings.trade_gas_per_perpetual,
            clock=clock,
            metrics=self.metrics,
        )
        self.receipts = ReceiptTracker(chain)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Gateway":
        """Wire the production stack. Raises ConfigurationError on a bad network."""
        network = network_from_settings(settings)
        chain = AsyncChain(ChainClient(network, settings.rpc_url, timeout=settings.rpc_timeout), timeout=settings.rpc_timeout)
        indexer = IndexerClient(settings.subgraph_url, timeout=settings.indexer_timeout)
        log_event(
            log, "gateway_started",
            network=network.name, chain_id=network.chain_id,
            reader=network.reader_address, symbol_service=network.symbol_registry_address,
        )
        return cls(settings, network, chain, indexer)

    async def close(self) -> None:
        await self.indexer.close()
        if hasattr(self.chain, "close"):
            await self.chain.close()

    @contextlib.asynccontextmanager
    async def _observe(self, operation: str) -> AsyncIterator[None]:
        start = time.perf_counter()
        try:
            yield
        except GatewayError as exc:
            self.metrics.requests.labels(operation=operation, outcome="error").inc()
            self.metrics.errors.labels(operation=operation, kind=exc.kind).inc()
            log_event(log, f"{operation}_failed", level=logging.ERROR, kind=exc.kind, reason=exc.reason, detail=exc.detail)
            raise
        except Exception:
            self.metrics.requests.labels(operation=operation, outcome="error").inc()
            self.metrics.errors.labels(operation=operation, kind="unclassified").inc()
            log.exception("%s failed with an unclassified error", operation)
            raise
        else:
            self.metrics.requests.labels(operation=operation, outcome="ok").inc()
        finally:
            self.metrics.latency_ms.labels(operation=operation).observe((time.perf_counter() - start) * 1000.0)

    # ========== Read surface ==========

    def resolve_network(self) -> NetworkConfig:
        return self.network

    def status(self) -> Dict[str, Any]:
        return {
            "network": self.network.name,
            "chainId": self.network.chain_id,
            "provider": self.settings.rpc_url,
            "reader": self.network.reader_address,
            "symbolService": self.network.symbol_registry_address,
            "subgraph": self.settings.subgraph_url,
            "connection": True,
        }

    async def list_symbols(self) -> List[str]:
        async with self._observe("symbols"):
            return await self.symbols.list_symbols()

    async def get_market(self, symbol: str) -> Dict[str, Any]:
        async with self._observe("perpetual"):
            market = await self.symbols.resolve(symbol)
            view = await self.state_reader.get_market(market)
            log_event(log, "perpetual", symbol=symbol)
            return render_market(view)

    async def get_account(self, private_key_or_address: str, symbol: str) -> Dict[str, Any]:
        async with self._observe("account"):
            trader = resolve_trader(private_key_or_address)
            market = await self.symbols.resolve(symbol)
            account = await self.reconciler.get_account(trader, market)
            log_event(log, "account", symbol=symbol)
            return render_account(account)

    async def quote(
        self,
        symbol: str,
        amount: Optional[str],
        trader: Optional[str] = None,
        is_close_only: bool = False,
    ) -> Dict[str, Any]:
        async with self._observe("price"):
            fixed_amount(amount)
            trader_address = resolve_trader(trader) if trader else None
            market = await self.symbols.resolve(symbol)
            quote = await self.quotes.quote(market, trader_address, amount, is_close_only)
            log_event(log, "price", symbol=symbol, amount=amount)
            return render_quote(quote)

    # ========== Write surface ==========

    async def submit_trade(
        self,
        private_key: str,
        symbol: str,
        amount: Optional[str],
        limit_price: Optional[str],
        is_close_only: bool = False,
        gas_price: Optional[str] = None,
    ) -> Dict[str, Any]:
        async with self._observe("trade"):
            # zero or missing amounts never reach the network
            fixed_amount(amount)
            signer = resolve_signer(private_key)
            market = await self.symbols.resolve(symbol)
            view = await self.state_reader.get_market(market)
            handle = await self.trades.submit_trade(
                signer,
                market,
                amount,
                limit_price,
                is_close_only=is_close_only,
                gas_price=gas_price,
                perpetual_count=view.perpetual_count,
            )
            return {"txHash": handle.tx_hash}

    async def get_receipt(self, tx_hash: str) -> Dict[str, Any]:
        async with self._observe("receipt"):
            receipt = await self.receipts.get_receipt(tx_hash)
            log_event(log, "receipt", tx_hash=tx_hash, confirmed=receipt.confirmed)
            return render_receipt(receipt)

    def metrics_text(self) -> str:
        return self.metrics.render().decode("utf-8")


def render_market(view: MarketView) -> Dict[str, Any]:
    return {
        "liquidityPoolAddress": view.market.pool_address,
        "perpetualIndex": view.market.perpetual_index,
        "collateralAddress": view.collateral_address,
        "isTradable": view.is_tradable,
        "underlyingSymbol": view.underlying_symbol,
        "indexPrice": format_decimal(view.index_price),
        "markPrice": format_decimal(view.mark_price),
        "fundingRate": format_decimal(view.funding_rate),
        "unitAccumulativeFunding": format_decimal(view.unit_accumulative_funding),
        "vaultFeeRate": format_decimal(view.vault_fee_rate),
        "operatorFeeRate": format_decimal(view.operator_fee_rate),
        "lpFeeRate": format_decimal(view.lp_fee_rate),
        "perpetualCountInLiquidityPool": view.perpetual_count,
    }


def render_account(account: AccountView) -> Dict[str, Any]:
    computed = account.computed
    return {
        "liquidityPoolAddress": account.market.pool_address,
        "perpetualIndex": account.market.perpetual_index,
        "traderAddress": account.trader_address,
        "position": format_decimal(account.position),
        "marginBalance": format_decimal(computed.margin_balance),
        "availableMargin": format_decimal(computed.available_margin),
        "liquidationPrice": format_decimal(computed.liquidation_price),
        "availableCashBalance": format_decimal(computed.available_cash_balance),
        "entryPrice": format_decimal(computed.entry_price),
        "fundingPNL": format_decimal(computed.funding_pnl),
        "pnl": format_decimal(computed.pnl),
    }


def render_quote(quote: Quote) -> Dict[str, Any]:
    return {
        "price": format_decimal(quote.price),
        "totalFee": format_decimal(quote.total_fee),
        "cost": format_decimal(quote.cost),
    }


def render_receipt(receipt: ReceiptStatus) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    if receipt.confirmed:
        body = {
            "gasUsed": receipt.gas_used,
            "blockNumber": receipt.block_number,
            "confirmations": receipt.confirmations,
            "status": receipt.status,
        }
    return {"txHash": receipt.tx_hash, "confirmed": receipt.confirmed, "receipt": body}
