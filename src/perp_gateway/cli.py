"""
Command line entry point wiring Settings -> Gateway.

    perp-gateway symbols
    perp-gateway market --symbol 00001
    perp-gateway account --symbol 00001 [--address 0x...]
    perp-gateway quote --symbol 00001 --amount -2.5 [--trader 0x...] [--close-only]
    perp-gateway trade --symbol 00001 --amount -2.5 --limit-price 0 [--close-only] [--gas-price 100]
    perp-gateway receipt --tx-hash 0x...

Private keys are read from MCDEX_PRIVATE_KEY rather than the command line.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional

from perp_gateway.boundary import error_response
from perp_gateway.config.config import Settings
from perp_gateway.core.errors import ConfigurationError
from perp_gateway.gateway import Gateway
from perp_gateway.infra.logging_cfg import build_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="perp-gateway", description="Perpetual market gateway")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Network and contract configuration")
    sub.add_parser("symbols", help="List market symbols from the indexer")

    market = sub.add_parser("market", help="Read one perpetual market")
    market.add_argument("--symbol", required=True)

    account = sub.add_parser("account", help="Read a trader's account")
    account.add_argument("--symbol", required=True)
    account.add_argument("--address", help="Trader address (defaults to the MCDEX_PRIVATE_KEY account)")

    quote = sub.add_parser("quote", help="Simulated execution price")
    quote.add_argument("--symbol", required=True)
    quote.add_argument("--amount", required=True, help="Signed amount, negative means sell")
    quote.add_argument("--trader")
    quote.add_argument("--close-only", action="store_true")

    trade = sub.add_parser("trade", help="Sign and broadcast a trade")
    trade.add_argument("--symbol", required=True)
    trade.add_argument("--amount", required=True, help="Signed amount, negative means sell")
    trade.add_argument("--limit-price", required=True)
    trade.add_argument("--close-only", action="store_true")
    trade.add_argument("--gas-price", help="Gas price in gwei (node price when omitted)")

    receipt = sub.add_parser("receipt", help="Confirmation status of a transaction")
    receipt.add_argument("--tx-hash", required=True)
    return parser


async def dispatch(gateway: Gateway, args: argparse.Namespace) -> Dict[str, Any]:
    private_key = os.getenv("MCDEX_PRIVATE_KEY")
    if args.command == "status":
        return gateway.status()
    if args.command == "symbols":
        return {"symbols": await gateway.list_symbols()}
    if args.command == "market":
        return {"perpetual": await gateway.get_market(args.symbol)}
    if args.command == "account":
        return {"account": await gateway.get_account(args.address or private_key, args.symbol)}
    if args.command == "quote":
        return {"price": await gateway.quote(args.symbol, args.amount, args.trader, args.close_only)}
    if args.command == "trade":
        return await gateway.submit_trade(
            private_key, args.symbol, args.amount, args.limit_price, args.close_only, args.gas_price,
        )
    if args.command == "receipt":
        return await gateway.get_receipt(args.tx_hash)
    raise ValueError(f"unknown command {args.command}")


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_time = time.time()
    try:
        settings = Settings.load(sanity_check=False)
    except ConfigurationError as exc:
        _emit_error(exc)
        return 2
    build_logger("perp_gateway", level=getattr(logging, settings.log_level), file_path=settings.log_file)
    settings.log_startup()

    try:
        gateway = Gateway.from_settings(settings)
    except ConfigurationError as exc:
        _emit_error(exc)
        return 2

    try:
        body = await dispatch(gateway, args)
    except Exception as exc:
        _emit_error(exc)
        return 1
    finally:
        await gateway.close()

    envelope = {
        "network": gateway.network.name,
        "timestamp": int(init_time * 1000),
        "latency": round(time.time() - init_time, 3),
        **body,
    }
    print(json.dumps(envelope, indent=2))
    return 0


def _emit_error(exc: BaseException) -> None:
    status, body = error_response(exc)
    print(json.dumps({"status": status, **body}, indent=2), file=sys.stderr)


def main() -> None:
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
