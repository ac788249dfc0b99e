"""Network name -> chain id and well-known contract addresses.

Contract addresses are deployment data. They come from a YAML address book
(path via env `MCDEX_ADDRESS_BOOK`, default `configs/deployments.yaml`) keyed by
chain id, and can be overridden per process with `MCDEX_READER_ADDRESS` /
`MCDEX_SYMBOL_SERVICE_ADDRESS`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from web3 import Web3

from perp_gateway.core.errors import ConfigurationError

CHAIN_IDS: Dict[str, int] = {
    "mainnet": 1,
    "kovan": 42,
    "arbitrum": 42161,
    "arbitrum-testnet": 421611,
}

ALIASES: Dict[str, str] = {
    "arb": "arbitrum",
    "arbtest": "arbitrum-testnet",
}


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    reader_address: str
    symbol_registry_address: str


def load_address_book(path: Optional[str]) -> Dict[int, Dict[str, str]]:
    """Load `{chain_id: {reader: ..., symbol_service: ...}}` from YAML.

    A missing file yields an empty book; a malformed one is a configuration error.
    """
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(detail=f"address book {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(detail=f"address book {path} must map chain ids to addresses")
    book: Dict[int, Dict[str, str]] = {}
    for key, entry in data.items():
        try:
            chain_id = int(key)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(detail=f"address book key {key!r} is not a chain id") from exc
        if not isinstance(entry, dict):
            raise ConfigurationError(detail=f"address book entry for chain {chain_id} must be a mapping")
        book[chain_id] = {str(k): str(v) for k, v in entry.items() if v}
    return book


def _checksum(label: str, value: Any, network: str) -> str:
    if not value:
        raise ConfigurationError(detail=f"no {label} address registered for network {network}")
    if not Web3.is_address(value):
        raise ConfigurationError(detail=f"{label} address {value!r} for network {network} is malformed")
    return Web3.to_checksum_address(value)


def resolve_network(
    name: str,
    address_book: Optional[Mapping[int, Mapping[str, str]]] = None,
    reader_override: Optional[str] = None,
    symbol_service_override: Optional[str] = None,
) -> NetworkConfig:
    """Build the immutable NetworkConfig or fail fast with ConfigurationError."""
    canonical = ALIASES.get((name or "").strip().lower(), (name or "").strip().lower())
    chain_id = CHAIN_IDS.get(canonical)
    if chain_id is None:
        raise ConfigurationError(detail=f"Invalid network {name}")

    entry = (address_book or {}).get(chain_id, {})
    reader = reader_override or entry.get("reader")
    symbol_service = symbol_service_override or entry.get("symbol_service")

    return NetworkConfig(
        name=canonical,
        chain_id=chain_id,
        reader_address=_checksum("reader", reader, canonical),
        symbol_registry_address=_checksum("symbol service", symbol_service, canonical),
    )


def network_from_settings(settings) -> NetworkConfig:
    return resolve_network(
        settings.network,
        load_address_book(settings.address_book_path),
        reader_override=settings.reader_address,
        symbol_service_override=settings.symbol_service_address,
    )
