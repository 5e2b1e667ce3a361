"""
Risk management module for the Market-Making Engine.

Provides inventory risk controls:
- Hedge necessity and cost/benefit
- Mean-variance inventory targets
"""

from .inventory import (
    InventoryRiskManager,
    HedgeRecommendation,
    HedgeAction,
    OptimalInventory,
)

__all__ = [
    "InventoryRiskManager",
    "HedgeRecommendation",
    "HedgeAction",
    "OptimalInventory",
]
