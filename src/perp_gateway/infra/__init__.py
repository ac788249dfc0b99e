"""
Infrastructure package.

This package contains the web3 contract bindings, the async RPC executor,
the indexer client and logging configuration.
"""

from perp_gateway.infra.async_execution import AsyncChain
from perp_gateway.infra.chain import ChainClient
from perp_gateway.infra.indexer_client import IndexerClient, IndexerResult
from perp_gateway.infra.logging_cfg import build_logger, log_event

__all__ = [
    "AsyncChain",
    "ChainClient",
    "IndexerClient",
    "IndexerResult",
    "build_logger",
    "log_event",
]
