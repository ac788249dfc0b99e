"""
Monitoring package.
"""

from perp_gateway.monitoring.metrics import GatewayMetrics

__all__ = ["GatewayMetrics"]
