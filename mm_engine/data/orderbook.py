"""
Order Book and Market Data Types
================================

In-memory data contracts exchanged with the market-data feed, the trade
feed and the position ledger:

    BIDS (Buy Orders)              ASKS (Sell Orders)
    Price    |  Qty                Price    |  Qty
    ─────────┼───────              ─────────┼───────
    100.02   |  500   <-- Best     100.03   |  300   <-- Best
    100.01   |  1200               100.04   |  800
    100.00   |  2500               100.05   |  1500

- Spread: best ask - best bid
- Mid price: (best bid + best ask) / 2
- Spread bps: spread / mid * 10000

All prices and quantities are decimal.Decimal. Floating-point drift in
price/quantity arithmetic is not acceptable in a quoting engine, so every
numeric field is coerced through its string form at construction.

Every type here is frozen: the engine reads snapshots, it never mutates them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..infra.exceptions import InvalidInputError


ZERO = Decimal(0)
ONE = Decimal(1)
BPS = Decimal(10000)


def as_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Coerce a number to Decimal via its string form.

    Decimal(0.1) would carry the binary float error into the engine;
    Decimal(str(0.1)) does not.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidInputError("boolean is not a number", field_name, value)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidInputError("not a number", field_name, value) from exc


def _finite(value: Any, field_name: str) -> Decimal:
    result = as_decimal(value, field_name)
    if not result.is_finite():
        raise InvalidInputError("must be finite", field_name, value)
    return result


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    """
    Coerce a timestamp to datetime.

    Feeds that stamp events with a number send epoch milliseconds; those
    become timezone-aware UTC datetimes.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise InvalidInputError("boolean is not a timestamp", field_name, value)
    if isinstance(value, (int, float, Decimal)):
        try:
            return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidInputError("epoch milliseconds out of range", field_name, value) from exc
    raise InvalidInputError("timestamp must be a datetime or epoch milliseconds", field_name, value)


class TradeSide(Enum):
    """Aggressor side of a trade."""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class OrderBookLevel:
    """
    A single aggregated price level.

    order_count is informational; analytics only use price and quantity.
    """
    price: Decimal
    quantity: Decimal
    order_count: int = 1

    def __post_init__(self):
        price = _finite(self.price, "price")
        quantity = _finite(self.quantity, "quantity")
        if price < 0:
            raise InvalidInputError("level price must be non-negative", "price", price)
        if quantity < 0:
            raise InvalidInputError("level quantity must be non-negative", "quantity", quantity)
        if self.order_count < 0:
            raise InvalidInputError("order count must be non-negative", "order_count", self.order_count)
        object.__setattr__(self, "price", price)
        object.__setattr__(self, "quantity", quantity)

    @property
    def notional(self) -> Decimal:
        """Price times quantity at this level."""
        return self.price * self.quantity


@dataclass(frozen=True)
class OrderBook:
    """
    Order book snapshot for a single symbol.

    Levels may be passed in any order; bids are stored highest first and
    asks lowest first. Plain (price, quantity) tuples are accepted and
    converted to OrderBookLevel.

    A snapshot with an empty side, or a crossed top of book, is still a
    valid object: analytics degrade to neutral values and the quote
    calculator declines to quote on it.
    """
    symbol: str
    bids: Tuple[OrderBookLevel, ...] = ()
    asks: Tuple[OrderBookLevel, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)

    # Monotonic per feed; breaks timestamp ties in last-snapshot-wins ordering
    sequence_number: int = 0

    def __post_init__(self):
        object.__setattr__(self, "timestamp", as_timestamp(self.timestamp))
        bids = tuple(sorted(self._coerce(self.bids), key=lambda lvl: lvl.price, reverse=True))
        asks = tuple(sorted(self._coerce(self.asks), key=lambda lvl: lvl.price))
        object.__setattr__(self, "bids", bids)
        object.__setattr__(self, "asks", asks)

    @staticmethod
    def _coerce(levels: Iterable[Any]) -> Tuple[OrderBookLevel, ...]:
        coerced = []
        for level in levels:
            if isinstance(level, OrderBookLevel):
                coerced.append(level)
            else:
                coerced.append(OrderBookLevel(*level))
        return tuple(coerced)

    @property
    def best_bid(self) -> Optional[OrderBookLevel]:
        """Best (highest) bid level."""
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[OrderBookLevel]:
        """Best (lowest) ask level."""
        return self.asks[0] if self.asks else None

    @property
    def is_two_sided(self) -> bool:
        return bool(self.bids) and bool(self.asks)

    @property
    def is_crossed(self) -> bool:
        """True when best bid >= best ask (locked or crossed)."""
        if not self.is_two_sided:
            return False
        return self.bids[0].price >= self.asks[0].price

    @property
    def mid_price(self) -> Decimal:
        """Mid-point between best bid and ask; 0 when a side is empty."""
        if not self.is_two_sided:
            return ZERO
        return (self.bids[0].price + self.asks[0].price) / 2

    @property
    def spread(self) -> Decimal:
        """Bid-ask spread in price units; 0 when a side is empty."""
        if not self.is_two_sided:
            return ZERO
        return self.asks[0].price - self.bids[0].price

    @property
    def spread_bps(self) -> Decimal:
        """Spread in basis points of mid."""
        mid = self.mid_price
        if mid <= 0:
            return ZERO
        return self.spread / mid * BPS

    def to_dict(self) -> Dict:
        """Summary for logging."""
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp.isoformat(),
            "sequence_number": self.sequence_number,
            "best_bid": str(self.best_bid.price) if self.best_bid else None,
            "best_ask": str(self.best_ask.price) if self.best_ask else None,
            "mid_price": str(self.mid_price),
            "spread_bps": str(self.spread_bps),
            "bid_levels": len(self.bids),
            "ask_levels": len(self.asks),
        }


@dataclass(frozen=True)
class Trade:
    """
    A print from the trade feed.

    timestamp accepts a datetime or epoch milliseconds.
    """
    price: Decimal
    size: Decimal
    side: TradeSide
    timestamp: datetime

    def __post_init__(self):
        price = _finite(self.price, "price")
        size = _finite(self.size, "size")
        if price < 0:
            raise InvalidInputError("trade price must be non-negative", "price", price)
        if size < 0:
            raise InvalidInputError("trade size must be non-negative", "size", size)
        side = self.side
        if not isinstance(side, TradeSide):
            try:
                side = TradeSide(str(side).lower())
            except ValueError as exc:
                raise InvalidInputError("unknown trade side", "side", self.side) from exc
        object.__setattr__(self, "price", price)
        object.__setattr__(self, "size", size)
        object.__setattr__(self, "side", side)
        object.__setattr__(self, "timestamp", as_timestamp(self.timestamp))


@dataclass(frozen=True)
class InventoryPosition:
    """
    Read-only view of the position ledger for one symbol.

    quantity is signed: positive = long, negative = short.
    inventory_risk is the ledger's 0-100 risk rating for the position.
    """
    quantity: Decimal
    average_price: Decimal = ZERO
    current_price: Decimal = ZERO
    unrealized_pnl: Decimal = ZERO
    inventory_risk: Decimal = ZERO

    def __post_init__(self):
        for name in ("quantity", "average_price", "current_price", "unrealized_pnl", "inventory_risk"):
            object.__setattr__(self, name, _finite(getattr(self, name), name))
        if not ZERO <= self.inventory_risk <= 100:
            raise InvalidInputError("inventory risk must be within [0, 100]",
                                    "inventory_risk", self.inventory_risk)

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0
