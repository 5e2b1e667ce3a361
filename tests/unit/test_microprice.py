"""Unit tests for the microprice estimator."""

from decimal import Decimal

import pytest

from mm_engine.signals import MicropriceEstimator

from tests.factories import make_book


@pytest.fixture
def estimator():
    return MicropriceEstimator()


class TestMicroprice:
    """Size-weighted fair value at the touch."""

    def test_balanced_touch_equals_mid(self, estimator, sample_book):
        estimate = estimator.microprice(sample_book)
        assert estimate.price == Decimal("100.5")
        assert estimate.confidence == 100
        assert estimate.deviation == 0

    def test_heavy_bid_pulls_toward_ask(self, estimator):
        book = make_book([(100, 30)], [(101, 10)])
        estimate = estimator.microprice(book)
        assert estimate.price == Decimal("100.75")
        assert float(estimate.confidence) == pytest.approx(100 / 3)
        assert estimate.deviation == Decimal("0.25") / Decimal("100.5")

    def test_heavy_ask_pulls_toward_bid(self, estimator):
        book = make_book([(100, 10)], [(101, 30)])
        estimate = estimator.microprice(book)
        assert estimate.price == Decimal("100.25")
        assert estimate.price < book.mid_price

    def test_only_touch_matters(self, estimator):
        shallow = make_book([(100, 30)], [(101, 10)])
        deep = make_book([(100, 30), (99, 5000)], [(101, 10), (102, 1)])
        assert estimator.microprice(shallow) == estimator.microprice(deep)

    def test_stays_within_touch(self, estimator):
        for bid_qty, ask_qty in [(1, 999), (999, 1), (7, 3), (0, 5)]:
            book = make_book([(100, bid_qty)], [(101, ask_qty)])
            estimate = estimator.microprice(book)
            assert 100 <= estimate.price <= 101
            assert 0 <= estimate.confidence <= 100

    def test_empty_side_falls_back_to_mid(self, estimator):
        estimate = estimator.microprice(make_book([(100, 10)], []))
        assert estimate.price == 0
        assert estimate.confidence == 0
        assert estimate.deviation == 0

    def test_no_size_at_touch(self, estimator):
        estimate = estimator.microprice(make_book([(100, 0)], [(101, 0)]))
        assert estimate.price == Decimal("100.5")
        assert estimate.confidence == 0
