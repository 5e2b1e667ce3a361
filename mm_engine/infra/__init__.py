"""
Infrastructure module for the Market-Making Engine.

Provides core infrastructure components:
- Configuration management
- Error types
- Logging and latency tracking
- Profitability accounting
"""

from .config import (
    EngineConfig,
    AnalyticsConfig,
    AdverseSelectionConfig,
    QuoteModelConfig,
    RiskScoreConfig,
    InventoryConfig,
    Environment,
    get_default_config,
    get_simulation_config,
    load_config_from_env,
)

from .exceptions import (
    EngineError,
    ConfigurationError,
    InvalidParameterError,
    InvalidInputError,
)

from .logging import (
    EngineLogger,
    LogCategory,
    LatencyMeasurement,
    LatencyTracker,
    configure_logging,
    get_logger,
    get_latency_stats,
    logger,
)

from .profitability import (
    ProfitabilityAnalyzer,
    ProfitabilityReport,
    FillLedger,
    Fill,
    format_profitability_report,
)

__all__ = [
    # Config
    "EngineConfig",
    "AnalyticsConfig",
    "AdverseSelectionConfig",
    "QuoteModelConfig",
    "RiskScoreConfig",
    "InventoryConfig",
    "Environment",
    "get_default_config",
    "get_simulation_config",
    "load_config_from_env",
    # Errors
    "EngineError",
    "ConfigurationError",
    "InvalidParameterError",
    "InvalidInputError",
    # Logging
    "EngineLogger",
    "LogCategory",
    "LatencyMeasurement",
    "LatencyTracker",
    "configure_logging",
    "get_logger",
    "get_latency_stats",
    "logger",
    # Profitability
    "ProfitabilityAnalyzer",
    "ProfitabilityReport",
    "FillLedger",
    "Fill",
    "format_profitability_report",
]
