"""
Configuration package.

This package contains environment settings and network resolution.
"""

from perp_gateway.config.config import Settings
from perp_gateway.config.networks import NetworkConfig, load_address_book, resolve_network

__all__ = [
    "Settings",
    "NetworkConfig",
    "load_address_book",
    "resolve_network",
]
