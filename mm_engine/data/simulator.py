"""
Synthetic Market for the Market-Making Engine
=============================================

Generates order book snapshots and trade prints for the command-line tick
loop and for tests that need realistic-looking books:
- Mid price follows a Gaussian random walk
- Level sizes grow away from the touch, with noise
- Trades arrive with a configurable buy probability, so informed
  (one-sided) flow can be produced on demand

This is NOT a market simulator in the matching-engine sense: snapshots are
independent draws around the current mid, and trades never consume book
liquidity.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

import numpy as np

from ..infra.logging import get_logger, LogCategory
from .orderbook import OrderBook, OrderBookLevel, Trade, TradeSide


logger = get_logger()


class SyntheticMarket:
    """
    Produces a stream of OrderBook snapshots and Trade prints for one symbol.
    """

    def __init__(
        self,
        symbol: str,
        mid_price: float = 100.0,
        spread_bps: float = 5.0,
        volatility: float = 0.0005,
        num_levels: int = 10,
        tick_size: float = 0.01,
        base_size: float = 500.0,
        seed: int = 42,
        start_time: Optional[datetime] = None,
    ):
        """
        Args:
            symbol: Instrument identifier stamped on every snapshot
            mid_price: Starting mid price
            spread_bps: Target touch spread in basis points
            volatility: Per-tick standard deviation of mid returns
            num_levels: Price levels generated on each side
            tick_size: Minimum price increment
            base_size: Quantity at the touch before noise
            seed: Random seed for reproducibility
            start_time: Timestamp of the first snapshot (default: now, UTC)
        """
        self._symbol = symbol
        self._mid = mid_price
        self._spread_bps = spread_bps
        self._volatility = volatility
        self._num_levels = num_levels
        self._tick_size = tick_size
        self._base_size = base_size
        self._rng = np.random.default_rng(seed)
        self._clock = start_time or datetime.now(timezone.utc)
        self._sequence = 0

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def mid_price(self) -> float:
        return self._mid

    def _round(self, price: float) -> Decimal:
        ticks = round(price / self._tick_size)
        return Decimal(str(round(ticks * self._tick_size, 8)))

    def _sizes(self) -> np.ndarray:
        multipliers = 1.0 + 0.3 * np.arange(self._num_levels)
        noise = 1.0 + self._rng.uniform(-0.2, 0.2, self._num_levels)
        return np.maximum(1.0, np.floor(self._base_size * multipliers * noise))

    def next_book(self, interval_seconds: float = 1.0) -> OrderBook:
        """
        Advance the clock and mid, and return a fresh snapshot.
        """
        self._mid *= float(np.exp(self._rng.normal(0.0, self._volatility)))
        self._clock += timedelta(seconds=interval_seconds)
        self._sequence += 1

        half_spread = self._mid * self._spread_bps / 10000 / 2
        best_bid = self._round(self._mid - half_spread)
        best_ask = self._round(self._mid + half_spread)
        tick = Decimal(str(self._tick_size))
        if best_ask <= best_bid:
            best_ask = best_bid + tick

        bids = [
            OrderBookLevel(best_bid - i * tick, Decimal(int(size)), int(self._rng.integers(1, 20)))
            for i, size in enumerate(self._sizes())
        ]
        asks = [
            OrderBookLevel(best_ask + i * tick, Decimal(int(size)), int(self._rng.integers(1, 20)))
            for i, size in enumerate(self._sizes())
        ]

        book = OrderBook(
            symbol=self._symbol,
            bids=tuple(bids),
            asks=tuple(asks),
            timestamp=self._clock,
            sequence_number=self._sequence,
        )
        logger.debug(
            f"Synthetic book {self._symbol} #{self._sequence}: mid={book.mid_price}",
            category=LogCategory.MARKET_DATA,
            symbol=self._symbol,
        )
        return book

    def recent_trades(
        self,
        count: int = 20,
        buy_probability: float = 0.5,
        span_seconds: float = 60.0,
        mean_size: float = 10.0,
    ) -> List[Trade]:
        """
        Trade prints spread evenly over the span_seconds before the clock.

        buy_probability far from 0.5 produces directional (informed-looking)
        flow; sizes are exponential around mean_size.
        """
        if count <= 0:
            return []
        sides = self._rng.random(count) < buy_probability
        sizes = np.maximum(1.0, np.round(self._rng.exponential(mean_size, count)))
        offsets = np.linspace(-span_seconds, 0.0, count)
        drift = self._rng.normal(0.0, self._volatility, count).cumsum()

        trades = []
        for is_buy, size, offset, move in zip(sides, sizes, offsets, drift):
            trades.append(Trade(
                price=self._round(self._mid * float(np.exp(move))),
                size=Decimal(int(size)),
                side=TradeSide.BUY if is_buy else TradeSide.SELL,
                timestamp=self._clock + timedelta(seconds=float(offset)),
            ))
        return trades

    def fill_probability(self, quoted_spread_bps: float) -> float:
        """
        Chance that both legs of a quote fill before the next tick.

        Tighter quotes relative to the touch fill more often.
        """
        if quoted_spread_bps <= 0:
            return 0.0
        return float(np.clip(self._spread_bps / quoted_spread_bps, 0.0, 1.0))

    def draw(self) -> float:
        """Uniform [0, 1) draw from the market's generator."""
        return float(self._rng.random())
