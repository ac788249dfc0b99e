"""
Environment-driven configuration with validation.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from perp_gateway.core.errors import ConfigurationError

load_dotenv()


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    network: str
    subgraph_url: Optional[str]
    trade_gas_base: int
    trade_gas_per_perpetual: int
    rpc_timeout: float
    indexer_timeout: float
    address_book_path: str
    reader_address: Optional[str]
    symbol_service_address: Optional[str]
    log_file: Optional[str]
    log_level: str

    def dump(self) -> dict:
        """Return a dict of settings for sanity checks/logging."""
        return self.__dict__.copy()

    @classmethod
    def load(cls, sanity_check: bool = True) -> "Settings":
        """
        Read settings from the environment.

        Pass sanity_check=False when logging is configured afterwards and call
        log_startup() once handlers are installed.
        """
        def _int_env(key: str, default: int) -> int:
            raw = os.getenv(key)
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(detail=f"{key}={raw!r} is not an integer") from exc

        def _float_env(key: str, default: float) -> float:
            raw = os.getenv(key)
            if raw is None or raw == "":
                return default
            try:
                return float(raw)
            except ValueError as exc:
                raise ConfigurationError(detail=f"{key}={raw!r} is not a number") from exc

        cfg = cls(
            rpc_url=os.getenv("ETHEREUM_RPC_URL", ""),
            network=os.getenv("ETHEREUM_CHAIN", "mainnet"),
            subgraph_url=os.getenv("MCDEX_SUBGRAPH_URL") or None,
            trade_gas_base=_int_env("MCDEX_TRADE_GAS_BASE", 4_800_000),
            trade_gas_per_perpetual=_int_env("MCDEX_TRADE_GAS_PER_PERPETUAL", 7_300),
            rpc_timeout=_float_env("MCDEX_RPC_TIMEOUT_SEC", 10.0),
            indexer_timeout=_float_env("MCDEX_INDEXER_TIMEOUT_SEC", 30.0),
            address_book_path=os.getenv("MCDEX_ADDRESS_BOOK", "configs/deployments.yaml"),
            reader_address=os.getenv("MCDEX_READER_ADDRESS") or None,
            symbol_service_address=os.getenv("MCDEX_SYMBOL_SERVICE_ADDRESS") or None,
            log_file=os.getenv("MCDEX_LOG_FILE") or None,
            log_level=os.getenv("MCDEX_LOG_LEVEL", "INFO").upper(),
        )
        cfg._validate()
        if sanity_check:
            cfg.log_startup()
        return cfg

    def log_startup(self) -> None:
        _sanity_check(self)

    def _validate(self) -> None:
        if not self.rpc_url:
            raise ConfigurationError(detail="ETHEREUM_RPC_URL must be set")
        if self.trade_gas_base <= 0:
            raise ConfigurationError(detail="MCDEX_TRADE_GAS_BASE must be > 0")
        if self.trade_gas_per_perpetual < 0:
            raise ConfigurationError(detail="MCDEX_TRADE_GAS_PER_PERPETUAL must be >= 0")
        if self.rpc_timeout <= 0 or self.indexer_timeout <= 0:
            raise ConfigurationError(detail="timeouts must be > 0")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigurationError(detail=f"MCDEX_LOG_LEVEL={self.log_level!r} is not a log level")


def _sanity_check(cfg: Settings) -> None:
    """
    Log critical settings once at startup so overrides are obvious.
    """
    logger = logging.getLogger("perp_gateway")
    payload = {
        "event": "config_loaded",
        "network": cfg.network,
        "subgraph": bool(cfg.subgraph_url),
        "trade_gas_base": cfg.trade_gas_base,
        "trade_gas_per_perpetual": cfg.trade_gas_per_perpetual,
        "rpc_timeout": cfg.rpc_timeout,
    }
    logger.info(json.dumps(payload))
    if not cfg.subgraph_url:
        logger.warning(
            "MCDEX_SUBGRAPH_URL is empty. symbol listing and entry price reconciliation will not work."
        )
