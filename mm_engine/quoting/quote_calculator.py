"""
Optimal Quote Calculator
========================

Avellaneda-Stoikov quoting adapted for a snapshot-driven engine.

RESERVATION PRICE:
    r = S - q * γ * σ² * T

    S = mid price, q = signed inventory, γ = risk aversion,
    σ = volatility, T = time horizon (seconds)

    Long (q > 0): r < S, the maker leans toward selling
    Short (q < 0): r > S, the maker leans toward buying

OPTIMAL SPREAD:
    δ = γ * σ² * T + (2 / γ) * ln(1 + γ / k)

    k = order-arrival intensity

The model spread is then floored at base_spread_bps / 10000, widened by
(1 + volatility_adjustment * σ) and tightened by (1 - competition_adjustment).

QUOTE PLACEMENT:
    neutral   bid = r - δ/2               ask = r + δ/2
    long      bid = r - δ/2 - 2·skew      ask = r + δ/2 - skew
    short     bid = r - δ/2 + skew        ask = r + δ/2 + 2·skew

    skew = inventory_skew * |q| * 0.001

In every case ask - bid >= δ > 0, so quotes never cross.

SIZING (quarter Kelly):
    edge = δ / S
    kelly = edge / σ²
    size = base_order_size * (1 + 0.25 * kelly)

FAIL CLOSED:
A quote with a non-finite, non-positive or crossed price, or a non-positive
size, is never returned. The calculator hands back
MarketMakingStrategy.no_quote() instead and logs why, so the execution
layer only ever sees quotes it can place.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..data.orderbook import BPS, ONE, ZERO, InventoryPosition, OrderBook, as_decimal
from ..infra.config import QuoteModelConfig, RiskScoreConfig
from ..infra.exceptions import InvalidParameterError
from ..infra.logging import get_logger, LogCategory
from ..signals.adverse_selection import AdverseSelectionResult
from ..signals.orderbook_analytics import MarketMetrics


logger = get_logger()


NORMAL_CONDITIONS = "Normal market making conditions"


@dataclass(frozen=True)
class QuoteParameters:
    """
    Per-call quoting knobs from the strategy-tuning component.

    base_spread_bps: spread floor in basis points
    inventory_skew: skew strength per unit of inventory
    volatility_adjustment: spread widening per unit of σ
    competition_adjustment: fractional tightening in [0, 1)
    min_profit_bps: quoted spread below this is flagged in the reasoning
    """
    base_spread_bps: Decimal = Decimal(10)
    inventory_skew: Decimal = ZERO
    volatility_adjustment: Decimal = ZERO
    competition_adjustment: Decimal = ZERO
    min_profit_bps: Decimal = ZERO

    def __post_init__(self):
        for name in ("base_spread_bps", "inventory_skew", "volatility_adjustment",
                     "competition_adjustment", "min_profit_bps"):
            object.__setattr__(self, name, as_decimal(getattr(self, name), name))

    def validate(self) -> "QuoteParameters":
        """Reject invalid knobs with InvalidParameterError."""
        for name in ("base_spread_bps", "inventory_skew", "volatility_adjustment", "min_profit_bps"):
            value = getattr(self, name)
            if not value.is_finite() or value < 0:
                raise InvalidParameterError(f"{name} must be a non-negative number", name, value)
        comp = self.competition_adjustment
        if not comp.is_finite() or not ZERO <= comp < ONE:
            raise InvalidParameterError("competition_adjustment must be in [0, 1)",
                                        "competition_adjustment", comp)
        return self


@dataclass(frozen=True)
class MarketMakingStrategy:
    """
    Quote recommendation for the order manager. Never mutated.

    quoted=False marks the no-quote sentinel: the order manager should pull
    or leave its quotes, and reasoning says why.
    """
    bid_price: Decimal
    ask_price: Decimal
    bid_size: Decimal
    ask_size: Decimal
    expected_profit: Decimal
    risk_score: Decimal
    reasoning: Tuple[str, ...] = field(default_factory=tuple)
    quoted: bool = True

    @classmethod
    def no_quote(cls, reason: str) -> "MarketMakingStrategy":
        return cls(
            bid_price=ZERO,
            ask_price=ZERO,
            bid_size=ZERO,
            ask_size=ZERO,
            expected_profit=ZERO,
            risk_score=Decimal(100),
            reasoning=(reason,),
            quoted=False,
        )

    @property
    def summary(self) -> str:
        return ". ".join(self.reasoning)

    @property
    def spread(self) -> Decimal:
        return self.ask_price - self.bid_price

    def to_dict(self) -> Dict:
        return {
            "bid_price": str(self.bid_price),
            "ask_price": str(self.ask_price),
            "bid_size": str(self.bid_size),
            "ask_size": str(self.ask_size),
            "expected_profit": str(self.expected_profit),
            "risk_score": float(self.risk_score),
            "reasoning": list(self.reasoning),
            "quoted": self.quoted,
        }


class QuoteCalculator:
    """
    Turns book + inventory + metrics into a bid/ask recommendation.

    Model constants come from QuoteModelConfig; the calculator keeps no
    state between calls.
    """

    def __init__(
        self,
        config: Optional[QuoteModelConfig] = None,
        risk_config: Optional[RiskScoreConfig] = None,
    ):
        self._config = (config or QuoteModelConfig()).validate()
        self._risk = risk_config or RiskScoreConfig()

        cfg = self._config
        self._gamma = as_decimal(cfg.risk_aversion, "risk_aversion")
        self._k = as_decimal(cfg.order_arrival_k, "order_arrival_k")
        self._epsilon = as_decimal(cfg.epsilon, "epsilon")
        self._base_size = as_decimal(cfg.base_order_size, "base_order_size")
        self._kelly_multiplier = as_decimal(cfg.kelly_multiplier, "kelly_multiplier")
        self._skew_unit = as_decimal(cfg.skew_unit, "skew_unit")
        self._max_size = (
            as_decimal(cfg.max_order_size, "max_order_size")
            if cfg.max_order_size is not None else None
        )

    def reservation_price(self, mid: Decimal, inventory: Decimal, sigma: Decimal, horizon: Decimal) -> Decimal:
        """r = S - q * γ * σ² * T"""
        return mid - inventory * self._gamma * sigma * sigma * horizon

    def optimal_spread(self, sigma: Decimal, horizon: Decimal) -> Decimal:
        """δ = γσ²T + (2/γ) ln(1 + γ/k), with k floored at epsilon."""
        k = max(self._k, self._epsilon)
        inventory_term = self._gamma * sigma * sigma * horizon
        arrival_term = (2 / self._gamma) * (ONE + self._gamma / k).ln()
        return inventory_term + arrival_term

    def kelly_fraction(self, spread: Decimal, mid: Decimal, sigma: Decimal) -> Tuple[Decimal, Decimal]:
        """
        Unconstrained Kelly fraction and the scaled fraction actually used.

        The scaled fraction is kelly * kelly_multiplier with the multiplier
        in (0, 1], so it never exceeds the unconstrained one in magnitude.
        """
        kelly = (spread / mid) / (sigma * sigma)
        return kelly, kelly * self._kelly_multiplier

    def calculate_optimal_quotes(
        self,
        book: OrderBook,
        inventory: InventoryPosition,
        metrics: MarketMetrics,
        params: QuoteParameters,
        time_horizon_seconds: Optional[float] = None,
        adverse_selection: Optional[AdverseSelectionResult] = None,
    ) -> MarketMakingStrategy:
        """
        Optimal quotes for one tick.

        Raises InvalidParameterError for bad params or horizon. Degenerate
        market data (empty/crossed book, zero mid, arithmetic blow-ups)
        returns MarketMakingStrategy.no_quote() instead of raising.
        """
        params.validate()
        horizon = as_decimal(
            time_horizon_seconds if time_horizon_seconds is not None
            else self._config.default_time_horizon_seconds,
            "time_horizon_seconds",
        )
        if not horizon.is_finite() or horizon <= 0:
            raise InvalidParameterError("time horizon must be positive", "time_horizon_seconds", horizon)

        if not book.is_two_sided:
            return self._suppress(book, "No quote: order book has an empty side")
        if book.is_crossed:
            return self._suppress(book, "No quote: order book is crossed")
        mid = book.mid_price
        if mid <= 0:
            return self._suppress(book, "No quote: non-positive mid price")

        try:
            strategy = self._compute(book, inventory, metrics, params, horizon, mid, adverse_selection)
        except ArithmeticError as exc:
            return self._suppress(book, f"No quote: arithmetic failure ({exc.__class__.__name__})")

        failure = self._check_quotable(strategy)
        if failure:
            return self._suppress(book, f"No quote: {failure}")

        logger.log_quote(
            book.symbol,
            float(strategy.bid_price),
            float(strategy.ask_price),
            float(strategy.bid_size),
            float(strategy.ask_size),
            float(strategy.risk_score),
            sequence_number=book.sequence_number,
        )
        return strategy

    def _compute(
        self,
        book: OrderBook,
        inventory: InventoryPosition,
        metrics: MarketMetrics,
        params: QuoteParameters,
        horizon: Decimal,
        mid: Decimal,
        adverse_selection: Optional[AdverseSelectionResult],
    ) -> MarketMakingStrategy:
        sigma = max(metrics.volatility, self._epsilon)
        q = inventory.quantity

        reservation = self.reservation_price(mid, q, sigma, horizon)

        spread = self.optimal_spread(sigma, horizon)
        spread = max(spread, params.base_spread_bps / BPS)
        spread *= ONE + params.volatility_adjustment * sigma
        spread *= ONE - params.competition_adjustment

        skew = params.inventory_skew * abs(q) * self._skew_unit
        half = spread / 2
        if q > 0:
            ask_price = reservation + half - skew
            bid_price = reservation - half - skew * 2
        elif q < 0:
            bid_price = reservation - half + skew
            ask_price = reservation + half + skew * 2
        else:
            bid_price = reservation - half
            ask_price = reservation + half

        _, scaled_kelly = self.kelly_fraction(spread, mid, sigma)
        size = self._base_size * (ONE + scaled_kelly)
        if self._max_size is not None:
            size = min(size, self._max_size)
        bid_size = ask_size = size

        expected_profit = (ask_price - bid_price) * min(bid_size, ask_size)
        risk_score = self.quote_risk(bid_price, ask_price, mid, inventory, metrics)
        reasoning = self.reasoning(inventory, metrics, params, bid_price, ask_price, mid, adverse_selection)

        return MarketMakingStrategy(
            bid_price=bid_price,
            ask_price=ask_price,
            bid_size=bid_size,
            ask_size=ask_size,
            expected_profit=expected_profit,
            risk_score=risk_score,
            reasoning=reasoning,
        )

    def quote_risk(
        self,
        bid_price: Decimal,
        ask_price: Decimal,
        mid: Decimal,
        inventory: InventoryPosition,
        metrics: MarketMetrics,
    ) -> Decimal:
        """
        Additive 0-100 risk score of a quote.

            +30 / +15  quoted spread under 0.1% / 0.2% of mid
            +0.4 x     ledger inventory risk
            +20 / +10  volatility above 5% / 3%
            +15        liquidity under $50k
            +15 x      |imbalance|
        """
        rc = self._risk
        risk = ZERO

        relative_spread = (ask_price - bid_price) / mid
        if relative_spread < as_decimal(rc.tight_spread_ratio):
            risk += rc.tight_spread_points
        elif relative_spread < as_decimal(rc.narrow_spread_ratio):
            risk += rc.narrow_spread_points

        risk += inventory.inventory_risk * as_decimal(rc.inventory_risk_weight)

        if metrics.volatility > as_decimal(rc.high_volatility):
            risk += rc.high_volatility_points
        elif metrics.volatility > as_decimal(rc.elevated_volatility):
            risk += rc.elevated_volatility_points

        if metrics.liquidity < as_decimal(rc.low_liquidity):
            risk += rc.low_liquidity_points

        risk += abs(metrics.order_book_imbalance) * as_decimal(rc.imbalance_weight)

        return min(Decimal(rc.max_score), risk)

    def reasoning(
        self,
        inventory: InventoryPosition,
        metrics: MarketMetrics,
        params: QuoteParameters,
        bid_price: Decimal,
        ask_price: Decimal,
        mid: Decimal,
        adverse_selection: Optional[AdverseSelectionResult] = None,
    ) -> Tuple[str, ...]:
        """Human-readable notes for every adjustment that fired."""
        rc = self._risk
        reasons: List[str] = []

        if inventory.quantity > 0:
            reasons.append("Skewing quotes to reduce long inventory")
        elif inventory.quantity < 0:
            reasons.append("Skewing quotes to cover short inventory")

        if metrics.volatility > as_decimal(rc.widening_volatility):
            reasons.append("Widening spread due to high volatility")

        pressure = as_decimal(rc.pressure_imbalance)
        if metrics.order_book_imbalance > pressure:
            reasons.append("Adjusting for strong buy-side pressure")
        elif metrics.order_book_imbalance < -pressure:
            reasons.append("Adjusting for strong sell-side pressure")

        if metrics.liquidity < as_decimal(rc.low_liquidity):
            reasons.append("Increasing caution due to low liquidity")

        if params.min_profit_bps > 0:
            quoted_bps = (ask_price - bid_price) / mid * BPS
            if quoted_bps < params.min_profit_bps:
                reasons.append(
                    f"Quoted spread {quoted_bps:.2f} bps is below the "
                    f"{params.min_profit_bps} bps profit target"
                )

        if adverse_selection is not None and adverse_selection.is_informed:
            reasons.append(f"Informed flow detected (score {adverse_selection.score})")

        return tuple(reasons) if reasons else (NORMAL_CONDITIONS,)

    @staticmethod
    def _check_quotable(strategy: MarketMakingStrategy) -> Optional[str]:
        values = (
            strategy.bid_price, strategy.ask_price, strategy.bid_size,
            strategy.ask_size, strategy.expected_profit, strategy.risk_score,
        )
        if not all(value.is_finite() for value in values):
            return "non-finite price or size"
        if strategy.bid_price <= 0:
            return f"non-positive bid price {strategy.bid_price:.6f}"
        if strategy.bid_price >= strategy.ask_price:
            return "bid at or above ask"
        if strategy.bid_size <= 0 or strategy.ask_size <= 0:
            return "non-positive size"
        return None

    @staticmethod
    def _suppress(book: OrderBook, reason: str) -> MarketMakingStrategy:
        logger.log_risk_event(
            "QUOTE_SUPPRESSED",
            f"{book.symbol}: {reason}",
            symbol=book.symbol,
            sequence_number=book.sequence_number,
        )
        return MarketMakingStrategy.no_quote(reason)
