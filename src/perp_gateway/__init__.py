"""
Perpetual market gateway: symbol resolution, on-chain state reads reconciled
with the subgraph indexer, price quotes and trade submission.
"""

__version__ = "0.1.0"
