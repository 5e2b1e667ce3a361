"""
Signal module for the Market-Making Engine.

Market microstructure signals computed from each snapshot:
- Order book analytics (liquidity, imbalance, spread, impact)
- Microprice fair-value estimate
- Adverse selection (informed flow) detection
"""

from .orderbook_analytics import (
    OrderBookAnalytics,
    MarketMetrics,
)

from .microprice import (
    MicropriceEstimator,
    MicropriceEstimate,
)

from .adverse_selection import (
    AdverseSelectionDetector,
    AdverseSelectionResult,
)

__all__ = [
    # Analytics
    "OrderBookAnalytics",
    "MarketMetrics",
    # Microprice
    "MicropriceEstimator",
    "MicropriceEstimate",
    # Adverse selection
    "AdverseSelectionDetector",
    "AdverseSelectionResult",
]
