"""
Adverse Selection Detector
==========================

A market maker loses when its quotes are hit preferentially by traders who
know where the price is going. Informed flow leaves footprints in the tape:

1. LARGE ORDERS: many prints far above the typical size
2. ONE-SIDED FLOW: buys (or sells) dominating the window
3. MOMENTUM: price drifting persistently across the window
4. URGENCY: an unusually high print rate

Each footprint adds a fixed number of points to a 0-100 score:

    large orders     +25   > 30% of trades larger than 3x the mean size
    directional      +30   |buys / total - 0.5| > 0.3
    momentum         +25   |last / first - 1| > 2%
    high frequency   +20   > 10 trades per minute over the observed span

The score is additive, so adding a footprint can only raise it. Flow is
flagged informed above 60. Fewer than 10 trades is not enough evidence
and scores 0.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from ..data.orderbook import ZERO, Trade, TradeSide
from ..infra.config import AdverseSelectionConfig
from ..infra.logging import get_logger, LogCategory


logger = get_logger()


LARGE_ORDERS = "Unusually large orders detected"
DIRECTIONAL_FLOW = "Strong directional flow"
PRICE_MOMENTUM = "Significant price momentum"
HIGH_FREQUENCY = "High frequency trading activity"

HALF = Decimal("0.5")


def _threshold(value: float) -> Decimal:
    return Decimal(str(value))


@dataclass(frozen=True)
class AdverseSelectionResult:
    """Informed-trading assessment of a trade window."""
    score: int
    is_informed: bool
    signals: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def insufficient(cls) -> "AdverseSelectionResult":
        return cls(score=0, is_informed=False, signals=())

    def to_dict(self) -> Dict:
        return {
            "score": self.score,
            "is_informed": self.is_informed,
            "signals": list(self.signals),
        }


class AdverseSelectionDetector:
    """
    Scores a window of recent trades for informed-trading risk.

    Holds only its thresholds; safe to share between threads.
    """

    def __init__(self, config: Optional[AdverseSelectionConfig] = None):
        self._config = (config or AdverseSelectionConfig()).validate()

    def detect(self, trades: Sequence[Trade]) -> AdverseSelectionResult:
        """
        Score the window. Trades are evaluated in timestamp order.
        """
        cfg = self._config
        if len(trades) < cfg.min_trades:
            return AdverseSelectionResult.insufficient()

        ordered = sorted(trades, key=lambda t: t.timestamp)
        n = len(ordered)
        sizes = [t.size for t in ordered]
        buys = sum(1 for t in ordered if t.side is TradeSide.BUY)

        score = 0
        signals: List[str] = []

        if self._has_large_orders(sizes):
            score += cfg.large_order_points
            signals.append(LARGE_ORDERS)

        buy_share = Decimal(buys) / n
        if abs(buy_share - HALF) > _threshold(cfg.directional_threshold):
            score += cfg.directional_points
            signals.append(DIRECTIONAL_FLOW)

        if self._has_momentum(ordered[0].price, ordered[-1].price):
            score += cfg.momentum_points
            signals.append(PRICE_MOMENTUM)

        if self.trades_per_minute(ordered) > cfg.trades_per_minute_threshold:
            score += cfg.high_frequency_points
            signals.append(HIGH_FREQUENCY)

        score = min(cfg.max_score, score)
        result = AdverseSelectionResult(
            score=score,
            is_informed=score > cfg.informed_threshold,
            signals=tuple(signals),
        )

        if result.is_informed:
            logger.log_risk_event(
                "INFORMED_FLOW",
                f"adverse selection score {score} ({', '.join(signals)})",
                score=score,
                trades=n,
            )
        else:
            logger.debug(
                f"Adverse selection score {score} over {n} trades",
                category=LogCategory.SIGNAL,
            )
        return result

    def _has_large_orders(self, sizes: Sequence[Decimal]) -> bool:
        cfg = self._config
        mean_size = sum(sizes, ZERO) / len(sizes)
        if mean_size <= 0:
            return False
        cutoff = mean_size * _threshold(cfg.large_order_multiplier)
        large = sum(1 for size in sizes if size > cutoff)
        return large > len(sizes) * _threshold(cfg.large_order_fraction)

    def _has_momentum(self, first_price: Decimal, last_price: Decimal) -> bool:
        if first_price <= 0:
            return False
        change = last_price / first_price - 1
        return abs(change) > _threshold(self._config.momentum_threshold)

    @staticmethod
    def trades_per_minute(ordered: Sequence[Trade]) -> float:
        """
        Print rate over the span between the first and last trade.

        A window with no elapsed time between its first and last print has
        no finite rate; it is reported as infinite, which always counts as
        high-frequency.
        """
        if len(ordered) < 2:
            return 0.0
        span = (ordered[-1].timestamp - ordered[0].timestamp).total_seconds()
        if span <= 0:
            return float("inf")
        return len(ordered) / span * 60.0
