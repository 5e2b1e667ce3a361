"""
Microprice Estimator
====================

The mid-price treats bid and ask equally:
    mid = (bid + ask) / 2

The microprice weights each side by the OPPOSITE side's resting size:
    microprice = (bid * ask_qty + ask * bid_qty) / (bid_qty + ask_qty)

- bid_qty >> ask_qty: buyers dominate, microprice sits near the ask
- ask_qty >> bid_qty: sellers dominate, microprice sits near the bid

Confidence reflects how balanced the touch is:
    confidence = min(bid_qty, ask_qty) / max(bid_qty, ask_qty) * 100

A 100 means both sides carry equal size (the estimate equals mid and is
hard to push around); near 0 means one side is nearly empty and the
estimate rests on a sliver of liquidity.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from ..data.orderbook import OrderBook, ZERO
from ..infra.logging import get_logger


logger = get_logger()


@dataclass(frozen=True)
class MicropriceEstimate:
    """Output of the microprice estimator."""
    price: Decimal
    confidence: Decimal     # 0 to 100
    deviation: Decimal      # |microprice - mid| / mid

    def to_dict(self) -> Dict[str, float]:
        return {
            "price": float(self.price),
            "confidence": float(self.confidence),
            "deviation": float(self.deviation),
        }


class MicropriceEstimator:
    """Computes the top-of-book microprice. Holds no state."""

    def microprice(self, book: OrderBook) -> MicropriceEstimate:
        """
        Microprice, confidence and relative deviation from mid.

        Degenerate books (an empty side, or no size at the touch) fall back
        to price = mid with zero confidence.
        """
        mid = book.mid_price
        if not book.is_two_sided:
            return MicropriceEstimate(price=mid, confidence=ZERO, deviation=ZERO)

        best_bid = book.bids[0]
        best_ask = book.asks[0]
        total_quantity = best_bid.quantity + best_ask.quantity
        if total_quantity <= 0:
            return MicropriceEstimate(price=mid, confidence=ZERO, deviation=ZERO)

        price = (best_bid.price * best_ask.quantity + best_ask.price * best_bid.quantity) / total_quantity

        larger = max(best_bid.quantity, best_ask.quantity)
        confidence = min(best_bid.quantity, best_ask.quantity) / larger * 100

        deviation = abs(price - mid) / mid if mid > 0 else ZERO

        logger.log_signal(
            "microprice",
            book.symbol,
            float(price),
            float(confidence) / 100,
            deviation=float(deviation),
        )
        return MicropriceEstimate(price=price, confidence=confidence, deviation=deviation)
