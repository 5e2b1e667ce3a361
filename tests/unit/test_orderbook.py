"""Unit tests for the order book data contracts."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from mm_engine.data import InventoryPosition, OrderBookLevel, Trade, TradeSide
from mm_engine.infra import InvalidInputError, InvalidParameterError

from tests.factories import BASE_TIME, make_book


class TestOrderBookLevel:
    """Level construction and validation."""

    def test_float_inputs_are_exact(self):
        """Floats go through their string form, so 0.1 stays 0.1."""
        level = OrderBookLevel(0.1, 0.3)
        assert level.price == Decimal("0.1")
        assert level.quantity == Decimal("0.3")

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidInputError):
            OrderBookLevel(100, -1)

    def test_rejected_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            OrderBookLevel(-5, 1)

    def test_non_finite_rejected(self):
        with pytest.raises(InvalidParameterError):
            OrderBookLevel(float("nan"), 1)

    def test_zero_quantity_allowed(self):
        assert OrderBookLevel(100, 0).quantity == 0


class TestOrderBook:
    """Derived top-of-book fields."""

    def test_levels_sorted(self):
        book = make_book([(99, 1), (100, 1), (98, 1)], [(103, 1), (101, 1), (102, 1)])
        assert [lvl.price for lvl in book.bids] == [100, 99, 98]
        assert [lvl.price for lvl in book.asks] == [101, 102, 103]

    def test_worked_example_mid(self, sample_book):
        assert sample_book.mid_price == Decimal("100.5")
        assert sample_book.spread == Decimal(1)

    @pytest.mark.parametrize("bid,ask", [
        ("100", "101"),
        ("0.01", "0.02"),
        ("99.995", "100.005"),
        ("12345.67", "12345.68"),
    ])
    def test_mid_is_average_of_touch(self, bid, ask):
        book = make_book([(bid, 1), ("0.001", 5)], [(ask, 1), ("99999", 5)])
        assert book.mid_price == (Decimal(bid) + Decimal(ask)) / 2

    def test_spread_bps(self):
        book = make_book([(99.95, 1)], [(100.05, 1)])
        assert book.spread_bps == Decimal("0.1") / Decimal(100) * 10000

    def test_empty_side_is_degenerate(self):
        book = make_book([(100, 1)], [])
        assert not book.is_two_sided
        assert book.mid_price == 0
        assert book.spread == 0
        assert book.spread_bps == 0
        assert book.best_ask is None

    def test_crossed_detection(self):
        assert make_book([(101, 1)], [(100, 1)]).is_crossed
        assert make_book([(100, 1)], [(100, 1)]).is_crossed
        assert not make_book([(100, 1)], [(101, 1)]).is_crossed

    def test_snapshot_is_immutable(self, sample_book):
        with pytest.raises(AttributeError):
            sample_book.symbol = "OTHER"

    def test_to_dict(self, sample_book):
        summary = sample_book.to_dict()
        assert summary["mid_price"] == "100.5"
        assert summary["bid_levels"] == 1


class TestTradeAndInventory:
    """Trade and inventory validation."""

    def test_epoch_millisecond_timestamp(self):
        trade = Trade(price=100, size=1, side="buy", timestamp=1700000000000)
        assert trade.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_datetime_timestamp_kept(self):
        assert Trade(price=100, size=1, side="buy", timestamp=BASE_TIME).timestamp is BASE_TIME

    @pytest.mark.parametrize("timestamp", ["2024-01-01", None, True, float("nan")])
    def test_bad_timestamp_rejected(self, timestamp):
        with pytest.raises(InvalidInputError):
            Trade(price=100, size=1, side="buy", timestamp=timestamp)

    def test_book_accepts_epoch_milliseconds(self):
        book = make_book([(100, 1)], [(101, 1)], timestamp=1700000000500)
        assert book.timestamp == datetime(2023, 11, 14, 22, 13, 20, 500000, tzinfo=timezone.utc)

    def test_trade_side_from_string(self):
        trade = Trade(price=100, size=1, side="BUY", timestamp=BASE_TIME)
        assert trade.side is TradeSide.BUY

    def test_unknown_trade_side(self):
        with pytest.raises(InvalidInputError):
            Trade(price=100, size=1, side="hold", timestamp=BASE_TIME)

    def test_inventory_risk_bounds(self):
        with pytest.raises(InvalidInputError):
            InventoryPosition(quantity=1, inventory_risk=101)
        with pytest.raises(InvalidInputError):
            InventoryPosition(quantity=1, inventory_risk=-1)

    def test_inventory_direction(self):
        assert InventoryPosition(quantity=5).is_long
        assert InventoryPosition(quantity=-5).is_short
        assert InventoryPosition(quantity=0).is_flat
