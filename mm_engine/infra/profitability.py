"""
Profitability Analysis for the Market-Making Engine
===================================================

A market maker earns the spread on round trips and pays for it in two ways:

1. INVENTORY COST: carrying and marking positions that did not round-trip
2. ADVERSE SELECTION COST: fills that moved against the maker right after

    gross profit      = volume * average captured spread
    net profit        = gross profit - (inventory cost + adverse selection cost)
    profit margin     = net / gross * 100          (0 when gross is 0)
    return on capital = net / volume * 100         (0 when volume is 0)

Everything is Decimal, so net profit equals gross minus costs exactly.

FillLedger accumulates realized fills off the quoting path (the tick loop
never waits on it) and feeds the totals into the analyzer on demand.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import threading

import numpy as np

from ..data.orderbook import ZERO, as_decimal
from .exceptions import InvalidParameterError
from .logging import get_logger, LogCategory


logger = get_logger()


@dataclass(frozen=True)
class ProfitabilityReport:
    """Aggregate P&L figures."""
    gross_profit: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    return_on_capital: Decimal
    total_costs: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            "gross_profit": float(self.gross_profit),
            "net_profit": float(self.net_profit),
            "profit_margin": float(self.profit_margin),
            "return_on_capital": float(self.return_on_capital),
            "total_costs": float(self.total_costs),
        }


@dataclass(frozen=True)
class Fill:
    """
    A completed round trip (or the realized part of one).

    quantity: units round-tripped
    spread_captured: ask fill price minus bid fill price, per unit
    """
    symbol: str
    quantity: Decimal
    spread_captured: Decimal
    inventory_cost: Decimal = ZERO
    adverse_selection_cost: Decimal = ZERO
    timestamp: Optional[datetime] = None


class ProfitabilityAnalyzer:
    """Stateless P&L calculator."""

    def calculate_profitability(
        self,
        total_volume: Any,
        avg_spread: Any,
        inventory_cost: Any,
        adverse_selection_cost: Any,
    ) -> ProfitabilityReport:
        """
        Gross/net profit, margin and return on capital.

        Raises InvalidParameterError on a negative volume or a non-finite
        input; costs may be negative (rebates).
        """
        volume = as_decimal(total_volume, "total_volume")
        spread = as_decimal(avg_spread, "avg_spread")
        inv_cost = as_decimal(inventory_cost, "inventory_cost")
        as_cost = as_decimal(adverse_selection_cost, "adverse_selection_cost")
        for name, value in (("total_volume", volume), ("avg_spread", spread),
                            ("inventory_cost", inv_cost), ("adverse_selection_cost", as_cost)):
            if not value.is_finite():
                raise InvalidParameterError(f"{name} must be finite", name, value)
        if volume < 0:
            raise InvalidParameterError("total volume must be non-negative", "total_volume", volume)

        gross_profit = volume * spread
        total_costs = inv_cost + as_cost
        net_profit = gross_profit - total_costs

        profit_margin = net_profit / gross_profit * 100 if gross_profit != 0 else ZERO
        return_on_capital = net_profit / volume * 100 if volume != 0 else ZERO

        return ProfitabilityReport(
            gross_profit=gross_profit,
            net_profit=net_profit,
            profit_margin=profit_margin,
            return_on_capital=return_on_capital,
            total_costs=total_costs,
        )


class FillLedger:
    """
    Thread-safe accumulator of realized fills.

    The tick loop records fills as they arrive; a monitoring task calls
    report() whenever it wants fresh aggregate figures.
    """

    def __init__(self, analyzer: Optional[ProfitabilityAnalyzer] = None):
        self._analyzer = analyzer or ProfitabilityAnalyzer()
        self._fills: List[Fill] = []
        self._lock = threading.Lock()

    def record_fill(
        self,
        symbol: str,
        quantity: Any,
        spread_captured: Any,
        inventory_cost: Any = 0,
        adverse_selection_cost: Any = 0,
        timestamp: Optional[datetime] = None,
    ) -> Fill:
        """Record a realized fill and return it."""
        qty = as_decimal(quantity, "quantity")
        if not qty.is_finite() or qty < 0:
            raise InvalidParameterError("fill quantity must be non-negative", "quantity", quantity)

        fill = Fill(
            symbol=symbol,
            quantity=qty,
            spread_captured=as_decimal(spread_captured, "spread_captured"),
            inventory_cost=as_decimal(inventory_cost, "inventory_cost"),
            adverse_selection_cost=as_decimal(adverse_selection_cost, "adverse_selection_cost"),
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        with self._lock:
            self._fills.append(fill)

        logger.debug(
            f"FILL: {symbol} {qty} @ spread {fill.spread_captured}",
            category=LogCategory.PERFORMANCE,
            symbol=symbol,
        )
        return fill

    def fills(self, symbol: Optional[str] = None) -> List[Fill]:
        with self._lock:
            return [f for f in self._fills if symbol is None or f.symbol == symbol]

    def totals(self, symbol: Optional[str] = None) -> Dict[str, Decimal]:
        """
        Volume, volume-weighted average spread and summed costs.
        """
        fills = self.fills(symbol)
        volume = sum((f.quantity for f in fills), ZERO)
        captured = sum((f.quantity * f.spread_captured for f in fills), ZERO)
        return {
            "total_volume": volume,
            "avg_spread": captured / volume if volume > 0 else ZERO,
            "inventory_cost": sum((f.inventory_cost for f in fills), ZERO),
            "adverse_selection_cost": sum((f.adverse_selection_cost for f in fills), ZERO),
        }

    def report(self, symbol: Optional[str] = None) -> ProfitabilityReport:
        """Run the analyzer over the recorded fills."""
        return self._analyzer.calculate_profitability(**self.totals(symbol))

    def spread_statistics(self, symbol: Optional[str] = None) -> Dict[str, float]:
        """
        Distribution of captured spread per fill, for monitoring only.
        """
        spreads = np.array([float(f.spread_captured) for f in self.fills(symbol)])
        if spreads.size == 0:
            return {"count": 0, "mean": 0.0, "std": 0.0, "p05": 0.0, "p50": 0.0, "p95": 0.0}
        return {
            "count": int(spreads.size),
            "mean": float(np.mean(spreads)),
            "std": float(np.std(spreads)),
            "p05": float(np.percentile(spreads, 5)),
            "p50": float(np.percentile(spreads, 50)),
            "p95": float(np.percentile(spreads, 95)),
        }

    def reset(self) -> None:
        with self._lock:
            self._fills.clear()


def format_profitability_report(
    report: ProfitabilityReport,
    totals: Dict[str, Decimal],
    spread_stats: Optional[Dict[str, float]] = None,
) -> str:
    """
    Format profitability figures as a readable report.
    """
    stats = spread_stats or {}
    return """
╔════════════════════════════════════════════════════════════╗
║               MARKET MAKING PROFITABILITY                  ║
╠════════════════════════════════════════════════════════════╣
║ VOLUME                                                     ║
║   Total Volume:     {volume:>14,.2f}                        ║
║   Avg Spread:       {avg_spread:>14.6f}                        ║
║   Fills:            {count:>14,}                        ║
╠════════════════════════════════════════════════════════════╣
║ PNL                                                        ║
║   Gross Profit:    ${gross:>14,.2f}                        ║
║   Total Costs:     ${costs:>14,.2f}                        ║
║   Net Profit:      ${net:>14,.2f}                        ║
╠════════════════════════════════════════════════════════════╣
║ RATIOS                                                     ║
║   Profit Margin:    {margin:>13.2f}%                        ║
║   Return/Volume:    {roc:>13.4f}%                        ║
╚════════════════════════════════════════════════════════════╝
""".format(
        volume=float(totals.get("total_volume", ZERO)),
        avg_spread=float(totals.get("avg_spread", ZERO)),
        count=int(stats.get("count", 0)),
        gross=float(report.gross_profit),
        costs=float(report.total_costs),
        net=float(report.net_profit),
        margin=float(report.profit_margin),
        roc=float(report.return_on_capital),
    )
