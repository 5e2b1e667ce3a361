"""
Market-Making Engine - Command Line Entry Point
==============================================

Drives the engine with a synthetic market so the whole pipeline can be
watched end to end:

    SyntheticMarket ──► MarketMakingEngine.process_tick ──► paper fills ──► FillLedger

The script plays the part of the external collaborators: it owns a paper
position ledger, decides (randomly) which quotes fill, and prints the
profitability report at the end.

Usage:
    python -m mm_engine.main --ticks 50 --symbol ETH-USD
    python -m mm_engine.main --ticks 200 --inventory 25 --arrival-k 500
    python -m mm_engine.main --buy-probability 0.95   # informed-looking flow

For detailed options:
    python -m mm_engine.main --help
"""

import argparse
import sys
from decimal import Decimal
from typing import List, Optional

from .data import InventoryPosition, SyntheticMarket
from .engine import MarketMakingEngine, TickResult
from .infra import (
    FillLedger,
    EngineError,
    configure_logging,
    format_profitability_report,
    get_latency_stats,
    get_simulation_config,
    load_config_from_env,
)
from .quoting import QuoteParameters


class PaperLedger:
    """
    Minimal position ledger standing in for the real one.

    inventory_risk grows linearly with |quantity| / max_inventory.
    """

    def __init__(self, quantity: Decimal, max_inventory: Decimal):
        self.quantity = quantity
        self.average_price = Decimal(0)
        self.max_inventory = max_inventory

    def snapshot(self, price: Decimal) -> InventoryPosition:
        risk = min(Decimal(100), abs(self.quantity) / self.max_inventory * 100)
        return InventoryPosition(
            quantity=self.quantity,
            average_price=self.average_price,
            current_price=price,
            unrealized_pnl=self.quantity * (price - self.average_price) if self.average_price else Decimal(0),
            inventory_risk=risk,
        )

    def apply(self, signed_quantity: Decimal, price: Decimal) -> None:
        new_quantity = self.quantity + signed_quantity
        if new_quantity == 0:
            self.average_price = Decimal(0)
        elif self.quantity == 0 or (self.quantity > 0) == (signed_quantity > 0):
            total = abs(self.quantity) * self.average_price + abs(signed_quantity) * price
            self.average_price = total / abs(new_quantity)
        elif (new_quantity > 0) != (self.quantity > 0):
            self.average_price = price
        self.quantity = new_quantity


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Market-making decision engine - synthetic tick loop",
    )
    parser.add_argument("--symbol", default="ETH-USD", help="Symbol to simulate")
    parser.add_argument("--ticks", type=int, default=50, help="Number of ticks to process")
    parser.add_argument("--mid", type=float, default=100.0, help="Starting mid price")
    parser.add_argument("--spread-bps", type=float, default=5.0, help="Synthetic touch spread (bps)")
    parser.add_argument("--inventory", type=float, default=0.0, help="Starting inventory")
    parser.add_argument("--max-inventory", type=float, default=100.0, help="Inventory at 100 risk")
    parser.add_argument("--fill-size", type=float, default=1.0, help="Units filled per leg")
    parser.add_argument("--buy-probability", type=float, default=0.5, help="Share of buys in the tape")
    parser.add_argument("--arrival-k", type=float, default=None, help="Override order-arrival intensity k")
    parser.add_argument("--horizon", type=float, default=None, help="Time horizon in seconds")
    parser.add_argument("--base-spread-bps", type=float, default=10.0)
    parser.add_argument("--inventory-skew", type=float, default=1.0)
    parser.add_argument("--volatility-adjustment", type=float, default=0.5)
    parser.add_argument("--competition-adjustment", type=float, default=0.1)
    parser.add_argument("--min-profit-bps", type=float, default=2.0)
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument("--quiet", action="store_true", help="Only print the final report")
    return parser.parse_args(argv)


def print_tick(result: TickResult) -> None:
    s = result.strategy
    if s.quoted:
        quote = f"{s.bid_size:>9.2f} @ {s.bid_price:>10.4f} | {s.ask_price:<10.4f} @ {s.ask_size:<9.2f}"
    else:
        quote = f"{'NO QUOTE':^47}"
    flag = "" if result.accepted else " (stale)"
    print(
        f"#{result.sequence_number:<5} mid={float(result.microprice.price):>10.4f} "
        f"{quote} risk={float(s.risk_score):>5.1f} "
        f"adv={result.adverse_selection.score:>3} hedge={result.hedge.action.value}{flag}"
    )


def run(args: argparse.Namespace) -> int:
    config = load_config_from_env(get_simulation_config())
    if args.log_level:
        config.log_level = args.log_level.upper()
    if args.arrival_k is not None:
        config.quote_model.order_arrival_k = args.arrival_k
    configure_logging(config.log_level, config.structured_logs)

    engine = MarketMakingEngine(config)
    market = SyntheticMarket(
        args.symbol,
        mid_price=args.mid,
        spread_bps=args.spread_bps,
        seed=args.seed,
    )
    ledger = PaperLedger(Decimal(str(args.inventory)), Decimal(str(args.max_inventory)))
    fills = FillLedger()
    fill_size = Decimal(str(args.fill_size))
    params = QuoteParameters(
        base_spread_bps=args.base_spread_bps,
        inventory_skew=args.inventory_skew,
        volatility_adjustment=args.volatility_adjustment,
        competition_adjustment=args.competition_adjustment,
        min_profit_bps=args.min_profit_bps,
    )

    if not args.quiet:
        print("\n" + "=" * 60)
        print("MARKET-MAKING ENGINE - SYNTHETIC TICK LOOP")
        print("=" * 60)
        print(f"Symbol: {args.symbol}   Ticks: {args.ticks}   Seed: {args.seed}")
        print("=" * 60 + "\n")

    for _ in range(args.ticks):
        book = market.next_book()
        trades = market.recent_trades(buy_probability=args.buy_probability)
        result = engine.process_tick(
            book,
            ledger.snapshot(book.mid_price),
            trades,
            params,
            target_inventory=0,
            time_horizon_seconds=args.horizon,
        )
        if not args.quiet:
            print_tick(result)
        if not result.actionable:
            continue

        s = result.strategy
        quoted_bps = float(s.spread / book.mid_price * 10000)
        p_fill = market.fill_probability(quoted_bps)
        bid_filled = market.draw() < p_fill
        ask_filled = market.draw() < p_fill
        size = min(fill_size, s.bid_size, s.ask_size)

        if bid_filled and ask_filled:
            fills.record_fill(args.symbol, size, s.spread, timestamp=book.timestamp)
        elif bid_filled:
            ledger.apply(size, s.bid_price)
        elif ask_filled:
            ledger.apply(-size, s.ask_price)

    report = fills.report(args.symbol)
    print(format_profitability_report(report, fills.totals(args.symbol), fills.spread_statistics(args.symbol)))
    print(f"Final inventory: {ledger.quantity}")

    stats = get_latency_stats().get("process_tick", {})
    if stats:
        print(f"Tick latency p50: {stats['p50_ns'] / 1000:.1f}us   p99: {stats['p99_ns'] / 1000:.1f}us")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except EngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
