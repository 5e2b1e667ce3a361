"""
Configuration Management for the Market-Making Engine
=====================================================

Centralized, type-safe configuration for every engine component:
- Order book analytics (impact notional, effective-spread depth)
- Adverse-selection thresholds
- Avellaneda-Stoikov model constants and sizing
- Quote risk-score thresholds
- Inventory / hedging limits

Per-call quoting knobs (QuoteParameters) are NOT part of this tree: they are
supplied by the strategy-tuning component on every call. The values here are
model constants that change rarely and are validated once at startup.

Environment overrides are read from MM_ENGINE_* variables by
load_config_from_env().
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import os

from .exceptions import ConfigurationError


class Environment(Enum):
    """Deployment environment - affects logging and latency budgets."""
    RESEARCH = "research"
    SIMULATION = "simulation"
    PAPER = "paper"


@dataclass
class AnalyticsConfig:
    """
    Order book analytics parameters.

    impact_notional is the dollar size walked through the ask side to
    estimate price impact for a "standard" trade.
    """
    impact_notional: float = 10000.0
    effective_spread_levels: int = 5

    def validate(self, section: str = "analytics") -> "AnalyticsConfig":
        if self.impact_notional <= 0:
            raise ConfigurationError("impact notional must be positive",
                                     f"{section}.impact_notional", self.impact_notional)
        if self.effective_spread_levels < 1:
            raise ConfigurationError("effective spread needs at least one level",
                                     f"{section}.effective_spread_levels",
                                     self.effective_spread_levels)
        return self


@dataclass
class AdverseSelectionConfig:
    """
    Informed-flow scoring thresholds.

    Each signal contributes a fixed number of points; the total is capped
    at max_score and flagged as informed above informed_threshold.
    """
    min_trades: int = 10

    # Unusually large orders
    large_order_multiplier: float = 3.0
    large_order_fraction: float = 0.3
    large_order_points: int = 25

    # One-sided flow
    directional_threshold: float = 0.3
    directional_points: int = 30

    # Price momentum over the window
    momentum_threshold: float = 0.02
    momentum_points: int = 25

    # Trade arrival rate
    trades_per_minute_threshold: float = 10.0
    high_frequency_points: int = 20

    max_score: int = 100
    informed_threshold: int = 60

    def validate(self, section: str = "adverse_selection") -> "AdverseSelectionConfig":
        if self.min_trades < 2:
            raise ConfigurationError("adverse selection needs at least two trades",
                                     f"{section}.min_trades", self.min_trades)
        for name in ("large_order_points", "directional_points",
                     "momentum_points", "high_frequency_points"):
            if getattr(self, name) < 0:
                raise ConfigurationError("signal points must be non-negative",
                                         f"{section}.{name}", getattr(self, name))
        return self


@dataclass
class QuoteModelConfig:
    """
    Avellaneda-Stoikov model constants.

    gamma: risk aversion
    order_arrival_k: order-arrival intensity (k)
    epsilon: floor applied to sigma and k before they divide anything
    """
    risk_aversion: float = 0.1
    order_arrival_k: float = 0.1
    default_time_horizon_seconds: float = 300.0
    epsilon: float = 1e-8

    # Sizing
    base_order_size: float = 1000.0
    kelly_multiplier: float = 0.25       # quarter Kelly
    max_order_size: Optional[float] = None

    # Inventory skew scale per unit of |q|
    skew_unit: float = 0.001

    def validate(self, section: str = "quote_model") -> "QuoteModelConfig":
        """
        Raise ConfigurationError on the first invalid constant.

        kelly_multiplier is bounded by 1 so the scaled Kelly fraction can
        never exceed the unconstrained one.
        """
        if self.risk_aversion <= 0:
            raise ConfigurationError("risk aversion must be positive",
                                     f"{section}.risk_aversion", self.risk_aversion)
        if self.order_arrival_k < 0:
            raise ConfigurationError("order arrival intensity must be non-negative",
                                     f"{section}.order_arrival_k", self.order_arrival_k)
        if self.epsilon <= 0:
            raise ConfigurationError("epsilon must be positive",
                                     f"{section}.epsilon", self.epsilon)
        if self.default_time_horizon_seconds <= 0:
            raise ConfigurationError("time horizon must be positive",
                                     f"{section}.default_time_horizon_seconds",
                                     self.default_time_horizon_seconds)
        if self.base_order_size <= 0:
            raise ConfigurationError("base order size must be positive",
                                     f"{section}.base_order_size", self.base_order_size)
        if not 0 < self.kelly_multiplier <= 1:
            raise ConfigurationError("Kelly multiplier must be in (0, 1]",
                                     f"{section}.kelly_multiplier", self.kelly_multiplier)
        if self.max_order_size is not None and self.max_order_size <= 0:
            raise ConfigurationError("max order size must be positive",
                                     f"{section}.max_order_size", self.max_order_size)
        if self.skew_unit < 0:
            raise ConfigurationError("skew unit must be non-negative",
                                     f"{section}.skew_unit", self.skew_unit)
        return self


@dataclass
class RiskScoreConfig:
    """Thresholds for the additive 0-100 quote risk score."""
    tight_spread_ratio: float = 0.001
    tight_spread_points: int = 30
    narrow_spread_ratio: float = 0.002
    narrow_spread_points: int = 15

    inventory_risk_weight: float = 0.4

    high_volatility: float = 0.05
    high_volatility_points: int = 20
    elevated_volatility: float = 0.03
    elevated_volatility_points: int = 10

    low_liquidity: float = 50000.0
    low_liquidity_points: int = 15

    imbalance_weight: float = 15.0

    # Reasoning-only thresholds
    widening_volatility: float = 0.04
    pressure_imbalance: float = 0.3

    max_score: int = 100


@dataclass
class InventoryConfig:
    """
    Inventory risk and hedging limits.

    hedge_band: fraction of |target| the inventory may deviate before a
    hedge is considered.
    max_inventory_ratio: largest share of capital held as inventory.
    """
    hedge_band: float = 0.2
    max_inventory_ratio: float = 0.3
    epsilon: float = 1e-8

    def validate(self, section: str = "inventory") -> "InventoryConfig":
        if self.hedge_band < 0:
            raise ConfigurationError("hedge band must be non-negative",
                                     f"{section}.hedge_band", self.hedge_band)
        if not 0 < self.max_inventory_ratio <= 1:
            raise ConfigurationError("max inventory ratio must be in (0, 1]",
                                     f"{section}.max_inventory_ratio", self.max_inventory_ratio)
        if self.epsilon <= 0:
            raise ConfigurationError("epsilon must be positive",
                                     f"{section}.epsilon", self.epsilon)
        return self


@dataclass
class EngineConfig:
    """
    Top-level configuration aggregating all components.
    """
    environment: Environment = Environment.RESEARCH
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    adverse_selection: AdverseSelectionConfig = field(default_factory=AdverseSelectionConfig)
    quote_model: QuoteModelConfig = field(default_factory=QuoteModelConfig)
    risk_score: RiskScoreConfig = field(default_factory=RiskScoreConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)

    # Logging
    log_level: str = "INFO"
    structured_logs: bool = False

    # Results slower than this are flagged late (None = no budget)
    max_tick_latency_us: Optional[float] = None

    def validate(self) -> "EngineConfig":
        """
        Check every section, raising ConfigurationError on the first
        invalid value. Returns self so it can be chained.
        """
        self.quote_model.validate()
        self.analytics.validate()
        self.adverse_selection.validate()
        self.inventory.validate()

        if self.max_tick_latency_us is not None and self.max_tick_latency_us <= 0:
            raise ConfigurationError("latency budget must be positive",
                                     "max_tick_latency_us", self.max_tick_latency_us)
        return self


def get_default_config() -> EngineConfig:
    """Returns default configuration for the research environment."""
    return EngineConfig()


def get_simulation_config() -> EngineConfig:
    """
    Returns configuration for the synthetic tick loop.

    Structured logs are off so the console stays readable.
    """
    config = EngineConfig(environment=Environment.SIMULATION)
    config.log_level = "WARNING"
    return config


def load_config_from_env(base: Optional[EngineConfig] = None) -> EngineConfig:
    """
    Apply MM_ENGINE_* environment overrides on top of a base config.

    Recognized variables:
        MM_ENGINE_LOG_LEVEL
        MM_ENGINE_RISK_AVERSION
        MM_ENGINE_BASE_ORDER_SIZE
        MM_ENGINE_MAX_TICK_LATENCY_US
    """
    config = base if base is not None else get_default_config()

    level = os.environ.get("MM_ENGINE_LOG_LEVEL")
    if level:
        config.log_level = level.upper()

    overrides = (
        ("MM_ENGINE_RISK_AVERSION", config.quote_model, "risk_aversion"),
        ("MM_ENGINE_BASE_ORDER_SIZE", config.quote_model, "base_order_size"),
        ("MM_ENGINE_MAX_TICK_LATENCY_US", config, "max_tick_latency_us"),
    )
    for var, target, attr in overrides:
        raw = os.environ.get(var)
        if raw is None:
            continue
        try:
            setattr(target, attr, float(raw))
        except ValueError as exc:
            raise ConfigurationError(f"{var} is not a number", var, raw) from exc

    return config.validate()
