"""
Order Book Analytics
====================

Derives per-tick market metrics from a raw order book snapshot:

    liquidity            Σ price·qty over every level on both sides
    imbalance            (bid liq - ask liq) / (bid liq + ask liq), in [-1, 1]
    volatility           spread_bps / 100
    microstructure noise (best ask - best bid) / mid
    effective spread     min-qty weighted spread over the top N level pairs
    price impact         (VWAP of walking the asks for a fixed notional - mid) / mid

The volatility figure is a spread proxy, not a realized-variance estimate:
a snapshot carries no return history, and a wide touch is the cheapest
available stand-in for an uncertain price.

Price impact walks the ask side only (cost of a standard-sized buy). If the
book holds less than the notional, all available levels are used and the
unfilled remainder adds nothing, so thin books understate impact.

Degenerate books (one or both sides empty, zero mid) yield zeros for the
affected metrics; nothing here raises on market data.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence

from ..data.orderbook import OrderBook, OrderBookLevel, ZERO, as_decimal
from ..infra.config import AnalyticsConfig
from ..infra.logging import get_logger, LogCategory


logger = get_logger()


@dataclass(frozen=True)
class MarketMetrics:
    """
    Metrics derived from one snapshot. Recomputed every tick, never stored.
    """
    volatility: Decimal
    liquidity: Decimal
    order_book_imbalance: Decimal
    microstructure_noise: Decimal
    effective_spread: Decimal
    price_impact: Decimal

    @classmethod
    def empty(cls) -> "MarketMetrics":
        return cls(ZERO, ZERO, ZERO, ZERO, ZERO, ZERO)

    def to_dict(self) -> Dict[str, float]:
        return {
            "volatility": float(self.volatility),
            "liquidity": float(self.liquidity),
            "order_book_imbalance": float(self.order_book_imbalance),
            "microstructure_noise": float(self.microstructure_noise),
            "effective_spread": float(self.effective_spread),
            "price_impact": float(self.price_impact),
        }


def side_liquidity(levels: Sequence[OrderBookLevel]) -> Decimal:
    """Total notional resting on one side of the book."""
    return sum((level.notional for level in levels), ZERO)


class OrderBookAnalytics:
    """
    Stateless order book analyzer.

    Safe to share between threads; every call works only on its arguments.
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self._config = (config or AnalyticsConfig()).validate()
        self._impact_notional = as_decimal(self._config.impact_notional, "impact_notional")

    def analyze_order_book(self, book: OrderBook) -> MarketMetrics:
        """
        Compute MarketMetrics for a snapshot.
        """
        bid_liquidity = side_liquidity(book.bids)
        ask_liquidity = side_liquidity(book.asks)
        total_liquidity = bid_liquidity + ask_liquidity

        metrics = MarketMetrics(
            volatility=book.spread_bps / 100,
            liquidity=total_liquidity,
            order_book_imbalance=self.imbalance(bid_liquidity, ask_liquidity),
            microstructure_noise=self.microstructure_noise(book),
            effective_spread=self.effective_spread(book),
            price_impact=self.price_impact(book),
        )

        if not book.is_two_sided:
            logger.warning(
                f"Degenerate book for {book.symbol}: {len(book.bids)} bids / {len(book.asks)} asks",
                category=LogCategory.MARKET_DATA,
                symbol=book.symbol,
            )
        return metrics

    @staticmethod
    def imbalance(bid_liquidity: Decimal, ask_liquidity: Decimal) -> Decimal:
        """
        Notional imbalance, +1 = all bids, -1 = all asks.
        """
        total = bid_liquidity + ask_liquidity
        if total <= 0:
            return ZERO
        return (bid_liquidity - ask_liquidity) / total

    @staticmethod
    def microstructure_noise(book: OrderBook) -> Decimal:
        """Top-of-book spread relative to mid."""
        mid = book.mid_price
        if mid <= 0:
            return ZERO
        return (book.asks[0].price - book.bids[0].price) / mid

    def effective_spread(self, book: OrderBook) -> Decimal:
        """
        Volume-weighted relative spread across the top level pairs.

        Pair i is weighted by min(bid qty_i, ask qty_i): the size that could
        actually round-trip at that depth.
        """
        mid = book.mid_price
        if mid <= 0:
            return ZERO

        depth = min(self._config.effective_spread_levels, len(book.bids), len(book.asks))
        weighted = ZERO
        total_weight = ZERO
        for bid, ask in zip(book.bids[:depth], book.asks[:depth]):
            weight = min(bid.quantity, ask.quantity)
            weighted += weight * (ask.price - bid.price) / mid
            total_weight += weight

        if total_weight <= 0:
            return ZERO
        return weighted / total_weight

    def price_impact(self, book: OrderBook, notional: Optional[Decimal] = None) -> Decimal:
        """
        Relative cost of buying a fixed notional by walking the asks.

        A market buy of $10k against:
            100.03 x 50   ($5,001.50)
            100.04 x 80   (remaining $4,998.50 -> 49.965 units)
        fills at the value-weighted price of the two levels.
        """
        mid = book.mid_price
        if mid <= 0:
            return ZERO

        remaining = as_decimal(notional, "notional") if notional is not None else self._impact_notional
        total_cost = ZERO
        total_quantity = ZERO

        for level in book.asks:
            if remaining <= 0:
                break
            if level.price <= 0:
                continue
            take_value = min(remaining, level.notional)
            total_cost += take_value
            total_quantity += take_value / level.price
            remaining -= take_value

        if total_quantity <= 0:
            return ZERO
        execution_price = total_cost / total_quantity
        return (execution_price - mid) / mid
