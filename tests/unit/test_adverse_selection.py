"""Unit tests for adverse selection scoring."""

from datetime import timedelta

import pytest

from mm_engine.data import Trade
from mm_engine.infra import AdverseSelectionConfig, ConfigurationError
from mm_engine.signals import AdverseSelectionDetector
from mm_engine.signals.adverse_selection import (
    DIRECTIONAL_FLOW,
    HIGH_FREQUENCY,
    LARGE_ORDERS,
    PRICE_MOMENTUM,
)

from tests.factories import BASE_TIME, make_trades


@pytest.fixture
def detector():
    return AdverseSelectionDetector()


def balanced(n):
    return "bs" * (n // 2) + "b" * (n % 2)


class TestScoring:
    """Individual footprints and their points."""

    def test_too_few_trades(self, detector):
        result = detector.detect(make_trades("b" * 9, span_seconds=1))
        assert result.score == 0
        assert not result.is_informed
        assert result.signals == ()

    def test_quiet_balanced_flow(self, detector):
        result = detector.detect(make_trades(balanced(20)))
        assert result.score == 0
        assert result.signals == ()

    def test_directional_flow_only(self, detector):
        # 18 of 20 buys, mean size 10 with a single 48-lot, 2 trades/min
        sizes = [8] * 19 + [48]
        result = detector.detect(make_trades("b" * 18 + "ss", sizes=sizes, span_seconds=600))
        assert result.score == 30
        assert result.signals == (DIRECTIONAL_FLOW,)
        assert not result.is_informed

    def test_directional_boundary_is_exclusive(self, detector):
        # 16/20 = 0.8, exactly 0.3 from even
        result = detector.detect(make_trades("b" * 16 + "s" * 4))
        assert DIRECTIONAL_FLOW not in result.signals
        result = detector.detect(make_trades("b" * 17 + "s" * 3))
        assert DIRECTIONAL_FLOW in result.signals

    def test_sell_side_dominance_counts(self, detector):
        result = detector.detect(make_trades("s" * 18 + "bb"))
        assert DIRECTIONAL_FLOW in result.signals

    def test_large_orders(self, detector):
        # 31 of 100 prints at 1000 against a mean of 310.69
        sides = balanced(100)
        sizes = [1000] * 31 + [1] * 69
        result = detector.detect(make_trades(sides, sizes=sizes, span_seconds=6000))
        assert result.signals == (LARGE_ORDERS,)
        assert result.score == 25

    def test_large_orders_need_more_than_thirty_percent(self, detector):
        sides = balanced(100)
        sizes = [1000] * 30 + [1] * 70
        result = detector.detect(make_trades(sides, sizes=sizes, span_seconds=6000))
        assert LARGE_ORDERS not in result.signals

    def test_momentum(self, detector):
        prices = [100] * 19 + [103]
        result = detector.detect(make_trades(balanced(20), prices=prices))
        assert result.signals == (PRICE_MOMENTUM,)

    def test_momentum_boundary_is_exclusive(self, detector):
        prices = [100] * 19 + [102]
        result = detector.detect(make_trades(balanced(20), prices=prices))
        assert PRICE_MOMENTUM not in result.signals

    def test_falling_price_counts(self, detector):
        prices = [100] * 19 + [97]
        result = detector.detect(make_trades(balanced(20), prices=prices))
        assert PRICE_MOMENTUM in result.signals

    def test_high_frequency(self, detector):
        result = detector.detect(make_trades(balanced(20), span_seconds=60))
        assert result.signals == (HIGH_FREQUENCY,)
        assert result.score == 20

    def test_high_frequency_boundary_is_exclusive(self, detector):
        # 20 prints over 120s is exactly 10 per minute
        result = detector.detect(make_trades(balanced(20), span_seconds=120))
        assert HIGH_FREQUENCY not in result.signals

    def test_zero_span_counts_as_high_frequency(self, detector):
        result = detector.detect(make_trades(balanced(12), span_seconds=0))
        assert HIGH_FREQUENCY in result.signals


class TestAggregation:
    """Score totals, cap and the informed flag."""

    def test_informed_above_sixty(self, detector):
        prices = [100] * 19 + [103]
        result = detector.detect(make_trades("b" * 20, prices=prices, span_seconds=60))
        assert result.score == 75
        assert result.is_informed
        assert result.signals == (DIRECTIONAL_FLOW, PRICE_MOMENTUM, HIGH_FREQUENCY)

    def test_sixty_is_not_informed(self):
        config = AdverseSelectionConfig(directional_points=40)
        detector = AdverseSelectionDetector(config)
        result = detector.detect(make_trades("b" * 20, span_seconds=60))
        assert result.score == 60
        assert not result.is_informed

    def test_score_capped(self, detector):
        sides = "b" * 100
        sizes = [1000] * 31 + [1] * 69
        prices = [100] * 99 + [110]
        result = detector.detect(make_trades(sides, sizes=sizes, prices=prices, span_seconds=60))
        assert len(result.signals) == 4
        assert result.score == 100

    def test_adding_footprint_never_lowers_score(self, detector):
        base = detector.detect(make_trades("b" * 18 + "ss"))
        more = detector.detect(make_trades("b" * 18 + "ss", span_seconds=60))
        assert more.score >= base.score
        assert 0 <= more.score <= 100

    def test_order_independent(self, detector):
        trades = make_trades("b" * 18 + "ss", prices=[100] * 19 + [103])
        shuffled = list(reversed(trades))
        assert detector.detect(shuffled) == detector.detect(trades)

    def test_trades_per_minute(self):
        trades = make_trades(balanced(11), span_seconds=30)
        assert AdverseSelectionDetector.trades_per_minute(trades) == pytest.approx(22.0)

    def test_single_trade_rate(self):
        trades = make_trades("b")
        assert AdverseSelectionDetector.trades_per_minute(trades) == 0.0

    def test_result_serializes(self, detector):
        result = detector.detect(make_trades("b" * 20, span_seconds=60))
        payload = result.to_dict()
        assert payload["score"] == result.score
        assert payload["signals"] == list(result.signals)


def test_window_start_does_not_matter(detector):
    early = make_trades("b" * 20, span_seconds=60)
    late = make_trades("b" * 20, span_seconds=60, start=BASE_TIME + timedelta(days=3))
    assert detector.detect(early) == detector.detect(late)


def test_epoch_millisecond_trades(detector):
    # 12 buys one second apart: 12 prints over 11s is well above 10 per minute
    trades = [
        Trade(price=100, size=1, side="buy", timestamp=1700000000000 + i * 1000)
        for i in range(12)
    ]
    result = detector.detect(trades)
    assert result.signals == (DIRECTIONAL_FLOW, HIGH_FREQUENCY)
    assert result.score == 50
    assert not result.is_informed


@pytest.mark.parametrize("kwargs", [{"min_trades": 1}, {"momentum_points": -5}])
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        AdverseSelectionDetector(AdverseSelectionConfig(**kwargs))
