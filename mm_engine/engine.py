"""
Market-Making Engine - Tick Pipeline
====================================

Per market tick:

    OrderBook ──► OrderBookAnalytics ──► MarketMetrics ─┐
              └─► MicropriceEstimator                   │
    Trades ─────► AdverseSelectionDetector ─────────────┤
    InventoryPosition ──────────────────────────────────┼─► QuoteCalculator ─► MarketMakingStrategy
                                                        │
                                                        └─► InventoryRiskManager ─► HedgeRecommendation

Every component is a pure function of its inputs. The only state the engine
keeps is the QuoteSequencer watermark: for each symbol, the newest snapshot
that has produced a published result.

LAST SNAPSHOT WINS:
With a buffered async feed, two snapshots of the same symbol can be in
flight at once. A result computed from an older snapshot than one already
published is stale; it is returned with accepted=False and a no-quote
strategy, so nothing downstream acts on an out-of-date price.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple
import threading

from .data.orderbook import InventoryPosition, OrderBook, Trade
from .infra.config import EngineConfig, get_default_config
from .infra.logging import get_logger
from .quoting.quote_calculator import MarketMakingStrategy, QuoteCalculator, QuoteParameters
from .risk.inventory import HedgeRecommendation, InventoryRiskManager
from .signals.adverse_selection import AdverseSelectionDetector, AdverseSelectionResult
from .signals.microprice import MicropriceEstimate, MicropriceEstimator
from .signals.orderbook_analytics import MarketMetrics, OrderBookAnalytics


logger = get_logger()


SnapshotKey = Tuple[datetime, int]


@dataclass(frozen=True)
class TickResult:
    """Everything the engine produced for one snapshot."""
    symbol: str
    sequence_number: int
    timestamp: datetime
    metrics: MarketMetrics
    microprice: MicropriceEstimate
    adverse_selection: AdverseSelectionResult
    strategy: MarketMakingStrategy
    hedge: HedgeRecommendation
    accepted: bool = True
    latency_us: float = 0.0
    late: bool = False

    @property
    def actionable(self) -> bool:
        """True when the order manager should place the strategy's quotes."""
        return self.accepted and not self.late and self.strategy.quoted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "sequence_number": self.sequence_number,
            "timestamp": self.timestamp.isoformat(),
            "metrics": self.metrics.to_dict(),
            "microprice": self.microprice.to_dict(),
            "adverse_selection": self.adverse_selection.to_dict(),
            "strategy": self.strategy.to_dict(),
            "hedge": self.hedge.to_dict(),
            "accepted": self.accepted,
            "latency_us": self.latency_us,
            "late": self.late,
        }


class QuoteSequencer:
    """
    Per-symbol freshness watermark.

    try_publish() atomically compares a snapshot's (timestamp, sequence)
    with the newest one already published for the symbol and advances the
    watermark only if the snapshot is strictly newer.
    """

    def __init__(self):
        self._published: Dict[str, SnapshotKey] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(book: OrderBook) -> SnapshotKey:
        return (book.timestamp, book.sequence_number)

    def is_stale(self, book: OrderBook) -> bool:
        """True if a newer-or-equal snapshot was already published."""
        with self._lock:
            latest = self._published.get(book.symbol)
        return latest is not None and self.key(book) <= latest

    def try_publish(self, book: OrderBook) -> bool:
        """Advance the watermark to this snapshot; False if it is stale."""
        key = self.key(book)
        with self._lock:
            latest = self._published.get(book.symbol)
            if latest is not None and key <= latest:
                return False
            self._published[book.symbol] = key
            return True

    def latest(self, symbol: str) -> Optional[SnapshotKey]:
        with self._lock:
            return self._published.get(symbol)

    def reset(self, symbol: Optional[str] = None) -> None:
        with self._lock:
            if symbol:
                self._published.pop(symbol, None)
            else:
                self._published.clear()


class MarketMakingEngine:
    """
    Composes the stateless components into the per-tick pipeline.

    One engine can serve many symbols from many threads; calls for the same
    symbol are ordered by the sequencer, not by a lock around the math.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = (config or get_default_config()).validate()
        self.analytics = OrderBookAnalytics(self._config.analytics)
        self.microprice_estimator = MicropriceEstimator()
        self.adverse_selection_detector = AdverseSelectionDetector(self._config.adverse_selection)
        self.quote_calculator = QuoteCalculator(self._config.quote_model, self._config.risk_score)
        self.inventory_risk = InventoryRiskManager(self._config.inventory)
        self.sequencer = QuoteSequencer()

    @property
    def config(self) -> EngineConfig:
        return self._config

    def process_tick(
        self,
        book: OrderBook,
        inventory: InventoryPosition,
        trades: Sequence[Trade],
        params: QuoteParameters,
        target_inventory: Any = 0,
        hedge_cost_per_unit: Any = 0,
        time_horizon_seconds: Optional[float] = None,
    ) -> TickResult:
        """
        Run the full pipeline for one snapshot.

        Raises InvalidParameterError for rejected parameters; degenerate
        market data yields a no-quote strategy instead.
        """
        with logger.measure_latency("process_tick", symbol=book.symbol) as measurement:
            metrics = self.analytics.analyze_order_book(book)
            microprice = self.microprice_estimator.microprice(book)
            adverse = self.adverse_selection_detector.detect(trades)
            strategy = self.quote_calculator.calculate_optimal_quotes(
                book,
                inventory,
                metrics,
                params,
                time_horizon_seconds=time_horizon_seconds,
                adverse_selection=adverse,
            )
            market_price = book.mid_price if book.mid_price > 0 else inventory.current_price
            hedge = self.inventory_risk.calculate_inventory_hedge(
                inventory, target_inventory, market_price, hedge_cost_per_unit,
            )

        latency_us = measurement.duration_us
        budget = self._config.max_tick_latency_us
        late = budget is not None and latency_us > budget

        accepted = self.sequencer.try_publish(book)
        if not accepted:
            logger.log_risk_event(
                "STALE_SNAPSHOT",
                f"{book.symbol} #{book.sequence_number} superseded by a newer snapshot; quote discarded",
                severity="INFO",
                symbol=book.symbol,
            )
            strategy = MarketMakingStrategy.no_quote("No quote: superseded by a newer snapshot")
        elif late:
            logger.log_risk_event(
                "LATE_RESULT",
                f"{book.symbol} tick took {latency_us:.1f}us (budget {budget:.1f}us)",
                symbol=book.symbol,
            )

        return TickResult(
            symbol=book.symbol,
            sequence_number=book.sequence_number,
            timestamp=book.timestamp,
            metrics=metrics,
            microprice=microprice,
            adverse_selection=adverse,
            strategy=strategy,
            hedge=hedge,
            accepted=accepted,
            latency_us=latency_us,
            late=late,
        )
