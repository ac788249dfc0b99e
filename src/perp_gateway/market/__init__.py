"""
Market package: symbol resolution and on-chain state reads.
"""

from perp_gateway.market.state_reader import StateReader, is_tradable
from perp_gateway.market.symbol_resolver import SymbolResolver

__all__ = ["StateReader", "SymbolResolver", "is_tradable"]
