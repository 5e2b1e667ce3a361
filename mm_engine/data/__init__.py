"""
Data module for the Market-Making Engine.

Provides the in-memory data contracts and a synthetic market:
- Order book levels and snapshots
- Trade prints and inventory positions
- Synthetic book/trade generation for the CLI and tests
"""

from .orderbook import (
    OrderBookLevel,
    OrderBook,
    Trade,
    TradeSide,
    InventoryPosition,
    as_decimal,
    as_timestamp,
)

from .simulator import (
    SyntheticMarket,
)

__all__ = [
    # Order book
    "OrderBookLevel",
    "OrderBook",
    "Trade",
    "TradeSide",
    "InventoryPosition",
    "as_decimal",
    "as_timestamp",
    # Simulation
    "SyntheticMarket",
]
