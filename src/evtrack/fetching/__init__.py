"""Historical and live log retrieval.

This package provides:
- `fetch_logs`: eth_getLogs over a block range with retry
- `subscribe`: live "logs" subscription delivering normalized records
"""

from evtrack.fetching.history import build_logs_query, fetch_logs, to_hex_block
from evtrack.fetching.live import build_subscription_filter, subscribe

__all__ = [
    "build_logs_query",
    "fetch_logs",
    "to_hex_block",
    "build_subscription_filter",
    "subscribe",
]
