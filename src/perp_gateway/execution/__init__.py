"""
Execution layer components.

- AccountReconciler: chain/indexer account merge and account computation
- QuoteEngine: simulated trade pricing
- TradeBuilder: trade intent construction and broadcast
- ReceiptTracker: confirmation lookup
"""

from perp_gateway.execution.account_reconciler import AccountReconciler, ReconcileOutcome, reconcile_storage
from perp_gateway.execution.quote_engine import QuoteEngine
from perp_gateway.execution.receipts import ReceiptTracker
from perp_gateway.execution.trade_builder import TradeBuilder

__all__ = [
    "AccountReconciler",
    "ReconcileOutcome",
    "reconcile_storage",
    "QuoteEngine",
    "ReceiptTracker",
    "TradeBuilder",
]
