"""Unit tests for profitability accounting."""

import threading
from decimal import Decimal

import pytest

from mm_engine.infra import FillLedger, InvalidParameterError, ProfitabilityAnalyzer
from mm_engine.infra.profitability import format_profitability_report


@pytest.fixture
def analyzer():
    return ProfitabilityAnalyzer()


class TestProfitabilityAnalyzer:
    """Gross/net profit and ratios."""

    def test_worked_example(self, analyzer):
        report = analyzer.calculate_profitability(1000, 0.5, 100, 50)
        assert report.gross_profit == 500
        assert report.total_costs == 150
        assert report.net_profit == 350
        assert report.profit_margin == 70
        assert report.return_on_capital == 35

    def test_net_is_exactly_gross_minus_costs(self, analyzer):
        report = analyzer.calculate_profitability("0.1", "0.2", "0.01", "0.001")
        assert report.gross_profit == Decimal("0.02")
        assert report.net_profit == Decimal("0.009")
        assert report.net_profit == report.gross_profit - report.total_costs

    def test_zero_gross_margin(self, analyzer):
        report = analyzer.calculate_profitability(1000, 0, 10, 0)
        assert report.profit_margin == 0
        assert report.net_profit == -10

    def test_zero_volume(self, analyzer):
        report = analyzer.calculate_profitability(0, 0.5, 0, 0)
        assert report.return_on_capital == 0
        assert report.profit_margin == 0

    def test_negative_volume_rejected(self, analyzer):
        with pytest.raises(InvalidParameterError):
            analyzer.calculate_profitability(-1, 0.5, 0, 0)

    def test_non_finite_rejected(self, analyzer):
        with pytest.raises(InvalidParameterError):
            analyzer.calculate_profitability(100, float("inf"), 0, 0)


class TestFillLedger:
    """Realized fill accumulation."""

    def test_volume_weighted_spread(self):
        ledger = FillLedger()
        ledger.record_fill("ETH-USD", 10, "0.5")
        ledger.record_fill("ETH-USD", 30, "0.1", inventory_cost=1, adverse_selection_cost="0.5")
        totals = ledger.totals("ETH-USD")
        assert totals["total_volume"] == 40
        assert totals["avg_spread"] == Decimal(8) / Decimal(40)
        assert totals["inventory_cost"] == 1
        assert totals["adverse_selection_cost"] == Decimal("0.5")

        report = ledger.report("ETH-USD")
        assert report.gross_profit == 8
        assert report.net_profit == Decimal("6.5")

    def test_symbols_kept_apart(self):
        ledger = FillLedger()
        ledger.record_fill("A", 1, 1)
        ledger.record_fill("B", 2, 1)
        assert len(ledger.fills("A")) == 1
        assert len(ledger.fills()) == 2
        assert ledger.totals()["total_volume"] == 3

    def test_empty_ledger(self):
        ledger = FillLedger()
        report = ledger.report()
        assert report.gross_profit == 0
        assert ledger.spread_statistics()["count"] == 0

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidParameterError):
            FillLedger().record_fill("A", -1, 1)

    def test_spread_statistics(self):
        ledger = FillLedger()
        for spread in (1, 2, 3, 4, 5):
            ledger.record_fill("A", 1, spread)
        stats = ledger.spread_statistics("A")
        assert stats["count"] == 5
        assert stats["mean"] == pytest.approx(3.0)
        assert stats["p50"] == pytest.approx(3.0)

    def test_concurrent_recording(self):
        ledger = FillLedger()

        def worker():
            for _ in range(200):
                ledger.record_fill("A", 1, "0.01")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert ledger.totals("A")["total_volume"] == 800

    def test_reset(self):
        ledger = FillLedger()
        ledger.record_fill("A", 1, 1)
        ledger.reset()
        assert ledger.fills() == []

    def test_formatted_report(self):
        ledger = FillLedger()
        ledger.record_fill("A", 1000, "0.5", inventory_cost=100, adverse_selection_cost=50)
        text = format_profitability_report(ledger.report(), ledger.totals(), ledger.spread_statistics())
        assert "MARKET MAKING PROFITABILITY" in text
        assert "350.00" in text
        assert "70.00%" in text
