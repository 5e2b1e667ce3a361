"""
Inventory Risk Manager
======================

Two questions a market maker asks after every quote update:

1. SHOULD I HEDGE?
   deviation = inventory - target
   A hedge is considered once |deviation| > 20% of |target|. It is worth
   doing only if the price risk it removes exceeds what it costs:

       volatility risk = |deviation| * price * inventory_risk / 100
       hedge cost      = |deviation| * cost per unit
       net benefit     = volatility risk - hedge cost

   When a hedge is warranted but too expensive, the cheaper lever is to
   shrink quoted size on the side that adds to the position.

   With a zero target the band is zero wide, so ANY non-zero inventory is a
   hedge candidate. That reads as "flatten everything when no target is
   set" and is kept as such.

2. WHAT INVENTORY SHOULD I TARGET?
   Mean-variance optimum for a single asset:

       q* = μ / (γ * σ² * P)

   clamped in magnitude to max_inventory_ratio * capital / P, with
   expected utility U = μ q - γ σ² q² / 2.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from ..data.orderbook import ZERO, InventoryPosition, as_decimal
from ..infra.config import InventoryConfig
from ..infra.exceptions import InvalidParameterError
from ..infra.logging import get_logger


logger = get_logger()


class HedgeAction(Enum):
    """What the hedging component should do."""
    HEDGE = "hedge"                    # Trade out the deviation
    REDUCE_QUOTES = "reduce_quotes"    # Hedge too costly, shrink quoted size
    HOLD = "hold"                      # Inside the band


@dataclass(frozen=True)
class HedgeRecommendation:
    """Hedge check result for the hedging/execution component."""
    should_hedge: bool
    hedge_amount: Decimal      # Signed: positive = sell this much, negative = buy
    hedge_cost: Decimal
    net_benefit: Decimal
    recommendation: str
    action: HedgeAction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_hedge": self.should_hedge,
            "hedge_amount": str(self.hedge_amount),
            "hedge_cost": str(self.hedge_cost),
            "net_benefit": str(self.net_benefit),
            "recommendation": self.recommendation,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class OptimalInventory:
    """Mean-variance inventory target."""
    optimal_quantity: Decimal
    optimal_value: Decimal
    allocation_percent: Decimal
    expected_utility: Decimal


def _non_negative(value: Any, name: str) -> Decimal:
    result = as_decimal(value, name)
    if not result.is_finite() or result < 0:
        raise InvalidParameterError(f"{name} must be a non-negative number", name, value)
    return result


def _positive(value: Any, name: str) -> Decimal:
    result = as_decimal(value, name)
    if not result.is_finite() or result <= 0:
        raise InvalidParameterError(f"{name} must be positive", name, value)
    return result


class InventoryRiskManager:
    """
    Evaluates hedge necessity and target inventory. Holds no position
    state: the ledger owns inventory, this class only reads snapshots.
    """

    def __init__(self, config: Optional[InventoryConfig] = None):
        self._config = (config or InventoryConfig()).validate()
        self._band = as_decimal(self._config.hedge_band, "hedge_band")
        self._max_ratio = as_decimal(self._config.max_inventory_ratio, "max_inventory_ratio")
        self._epsilon = as_decimal(self._config.epsilon, "epsilon")

    def calculate_inventory_hedge(
        self,
        inventory: InventoryPosition,
        target_inventory: Any,
        market_price: Any,
        hedge_cost_per_unit: Any,
    ) -> HedgeRecommendation:
        """
        Decide whether to hedge the deviation from target.

        Raises InvalidParameterError for a negative price or cost.
        """
        target = as_decimal(target_inventory, "target_inventory")
        if not target.is_finite():
            raise InvalidParameterError("target inventory must be finite", "target_inventory", target)
        price = _non_negative(market_price, "market_price")
        unit_cost = _non_negative(hedge_cost_per_unit, "hedge_cost_per_unit")

        deviation = inventory.quantity - target
        volatility_risk = abs(deviation) * price * inventory.inventory_risk / 100

        should_hedge = abs(deviation) > abs(target) * self._band
        hedge_amount = deviation if should_hedge else ZERO
        hedge_cost = abs(hedge_amount) * unit_cost
        net_benefit = volatility_risk - hedge_cost

        if should_hedge and net_benefit > 0:
            action = HedgeAction.HEDGE
            recommendation = (
                f"Hedge {abs(hedge_amount):.2f} units to reduce risk by ${volatility_risk:.2f}"
            )
        elif should_hedge:
            action = HedgeAction.REDUCE_QUOTES
            recommendation = (
                f"Hedge cost (${hedge_cost:.2f}) exceeds risk reduction (${volatility_risk:.2f}). "
                f"Consider reducing quotes instead."
            )
        else:
            action = HedgeAction.HOLD
            recommendation = "Inventory within acceptable range. No hedging needed."

        if action is not HedgeAction.HOLD:
            logger.log_risk_event(
                "HEDGE_CHECK",
                recommendation,
                severity="WARNING" if action is HedgeAction.HEDGE else "INFO",
                deviation=str(deviation),
                net_benefit=str(net_benefit),
            )

        return HedgeRecommendation(
            should_hedge=should_hedge,
            hedge_amount=hedge_amount,
            hedge_cost=hedge_cost,
            net_benefit=net_benefit,
            recommendation=recommendation,
            action=action,
        )

    def calculate_optimal_inventory(
        self,
        expected_return: Any,
        volatility: Any,
        risk_aversion: Any,
        capital: Any,
        price: Any,
    ) -> OptimalInventory:
        """
        Mean-variance optimal inventory, clamped to the capital limit.

        The sign of the expected return is kept: a negative edge targets a
        short position of the same clamped magnitude.
        """
        mu = as_decimal(expected_return, "expected_return")
        if not mu.is_finite():
            raise InvalidParameterError("expected return must be finite", "expected_return", mu)
        sigma = _non_negative(volatility, "volatility")
        gamma = _positive(risk_aversion, "risk_aversion")
        capital = _positive(capital, "capital")
        price = _positive(price, "price")

        variance = max(sigma, self._epsilon) ** 2
        unconstrained = mu / (gamma * variance * price)

        max_quantity = capital * self._max_ratio / price
        magnitude = min(abs(unconstrained), max_quantity)
        quantity = magnitude if unconstrained >= 0 else -magnitude

        optimal_value = magnitude * price
        allocation_percent = optimal_value / capital * 100
        expected_utility = mu * quantity - gamma * variance * quantity ** 2 / 2

        return OptimalInventory(
            optimal_quantity=quantity,
            optimal_value=optimal_value,
            allocation_percent=allocation_percent,
            expected_utility=expected_utility,
        )
