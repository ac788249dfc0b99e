"""
Pytest configuration and fixtures.
Adds src/ to Python path so tests can import perp_gateway without installing it.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add the repo root's src/ directory to sys.path
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from perp_gateway.config.config import Settings  # noqa: E402
from perp_gateway.config.networks import NetworkConfig  # noqa: E402
from perp_gateway.core.fixed_point import to_fixed  # noqa: E402

POOL = "0x" + "11" * 20
TRADER = "0x" + "22" * 20
COLLATERAL = "0x" + "33" * 20
READER = "0x" + "44" * 20
SYMBOL_SERVICE = "0x" + "55" * 20
PRIVATE_KEY = "0x" + "01" * 32


def perpetual_tuple(
    state: int = 2,
    is_market_closed: bool = False,
    symbol: str = "ETH",
    index_price: str = "3000",
    mark_price: str = "3000",
    funding_rate: str = "0.0001",
    unit_accumulative_funding: str = "0",
    operator_fee_rate: str = "0.0001",
    lp_fee_rate: str = "0.0007",
    initial_margin_rate: str = "0.1",
    maintenance_margin_rate: str = "0.05",
    keeper_gas_reward: str = "1",
) -> tuple:
    """Reader-shaped perpetual tuple with fixed-point numbers."""
    return (
        state,
        is_market_closed,
        symbol,
        to_fixed(index_price),
        to_fixed(mark_price),
        to_fixed(funding_rate),
        to_fixed(unit_accumulative_funding),
        to_fixed(operator_fee_rate),
        to_fixed(lp_fee_rate),
        to_fixed(initial_margin_rate),
        to_fixed(maintenance_margin_rate),
        to_fixed(keeper_gas_reward),
    )


def pool_tuple(
    perpetuals: Optional[List[tuple]] = None,
    is_synced: bool = True,
    is_running: bool = True,
    vault_fee_rate: str = "0.0002",
) -> tuple:
    if perpetuals is None:
        perpetuals = [perpetual_tuple()]
    return (is_synced, (is_running, COLLATERAL, to_fixed(vault_fee_rate), perpetuals))


def account_tuple(cash: str = "1000", position: str = "0", target_leverage: str = "5") -> tuple:
    return (True, (to_fixed(cash), to_fixed(position), to_fixed(target_leverage)))


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        rpc_url="http://localhost:8545",
        network="arbitrum",
        subgraph_url="https://indexer.test/subgraphs/perpetual",
        trade_gas_base=4_800_000,
        trade_gas_per_perpetual=7_300,
        rpc_timeout=10.0,
        indexer_timeout=30.0,
        address_book_path="configs/deployments.yaml",
        reader_address=None,
        symbol_service_address=None,
        log_file=None,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def network() -> NetworkConfig:
    return NetworkConfig(
        name="arbitrum",
        chain_id=42161,
        reader_address=READER,
        symbol_registry_address=SYMBOL_SERVICE,
    )


@pytest.fixture
def chain() -> MagicMock:
    """AsyncChain stand-in: every collaborator call is an AsyncMock."""
    mock = MagicMock()
    mock.get_perpetual_uid = AsyncMock(return_value=(POOL, 0))
    mock.query_liquidity_pool = AsyncMock(return_value=pool_tuple())
    mock.query_account_storage = AsyncMock(return_value=account_tuple())
    mock.query_trade = AsyncMock(return_value=(True, to_fixed("3001.5"), to_fixed("2.1"), to_fixed("602.4")))
    mock.gas_price = AsyncMock(return_value=2 * 10**9)
    mock.send_trade = AsyncMock(return_value="0x" + "ab" * 32)
    mock.get_transaction_receipt = AsyncMock(return_value=None)
    mock.block_number = AsyncMock(return_value=100)
    mock.close = AsyncMock()
    return mock
