"""
Market-Making Decision Engine
=============================

A stateless quantitative core that turns an order book snapshot, the
current inventory and recent trade flow into optimal quotes, sizes and a
hedging action.

MODULES:
- data: Order book / trade / inventory contracts and a synthetic market
- signals: Order book analytics, microprice, adverse selection
- quoting: Avellaneda-Stoikov quote calculator
- risk: Inventory hedging and target inventory
- infra: Configuration, errors, logging, profitability accounting
- engine: Per-tick pipeline with last-snapshot-wins sequencing

The engine recommends; it never places orders, persists anything or talks
to the network. Those belong to the collaborators that feed it snapshots
and consume its recommendations.
"""

__version__ = "1.0.0"

from .infra import (
    EngineConfig,
    get_default_config,
    get_simulation_config,
    load_config_from_env,
    configure_logging,
    logger,
    EngineError,
    ConfigurationError,
    InvalidParameterError,
    InvalidInputError,
    ProfitabilityAnalyzer,
    ProfitabilityReport,
    FillLedger,
)

from .data import (
    OrderBookLevel,
    OrderBook,
    Trade,
    TradeSide,
    InventoryPosition,
    SyntheticMarket,
)

from .signals import (
    OrderBookAnalytics,
    MarketMetrics,
    MicropriceEstimator,
    MicropriceEstimate,
    AdverseSelectionDetector,
    AdverseSelectionResult,
)

from .quoting import (
    QuoteCalculator,
    QuoteParameters,
    MarketMakingStrategy,
)

from .risk import (
    InventoryRiskManager,
    HedgeRecommendation,
    HedgeAction,
    OptimalInventory,
)

from .engine import (
    MarketMakingEngine,
    QuoteSequencer,
    TickResult,
)

__all__ = [
    # Config
    "EngineConfig",
    "get_default_config",
    "get_simulation_config",
    "load_config_from_env",
    # Logging
    "configure_logging",
    "logger",
    # Errors
    "EngineError",
    "ConfigurationError",
    "InvalidParameterError",
    "InvalidInputError",
    # Data
    "OrderBookLevel",
    "OrderBook",
    "Trade",
    "TradeSide",
    "InventoryPosition",
    "SyntheticMarket",
    # Signals
    "OrderBookAnalytics",
    "MarketMetrics",
    "MicropriceEstimator",
    "MicropriceEstimate",
    "AdverseSelectionDetector",
    "AdverseSelectionResult",
    # Quoting
    "QuoteCalculator",
    "QuoteParameters",
    "MarketMakingStrategy",
    # Risk
    "InventoryRiskManager",
    "HedgeRecommendation",
    "HedgeAction",
    "OptimalInventory",
    # Profitability
    "ProfitabilityAnalyzer",
    "ProfitabilityReport",
    "FillLedger",
    # Engine
    "MarketMakingEngine",
    "QuoteSequencer",
    "TickResult",
]
