"""Unit tests for the tick pipeline and last-snapshot-wins sequencing."""

import random
import threading
from datetime import timedelta

import pytest

from mm_engine.data import InventoryPosition, SyntheticMarket
from mm_engine.engine import MarketMakingEngine, QuoteSequencer
from mm_engine.infra import ConfigurationError, EngineConfig, InvalidParameterError, get_latency_stats
from mm_engine.quoting import QuoteParameters
from mm_engine.risk import HedgeAction

from tests.factories import BASE_TIME, make_book, make_trades


def book_at(seconds, sequence=0, symbol="TEST"):
    return make_book(
        [(100, 50)], [(101, 50)],
        symbol=symbol,
        timestamp=BASE_TIME + timedelta(seconds=seconds),
        sequence_number=sequence,
    )


@pytest.fixture
def engine():
    return MarketMakingEngine()


class TestPipeline:
    """One tick end to end."""

    def test_fresh_tick(self, engine, sample_book, flat_inventory, default_params):
        trades = make_trades("b" * 12, span_seconds=600)
        result = engine.process_tick(sample_book, flat_inventory, trades, default_params)

        assert result.accepted
        assert not result.late
        assert result.actionable
        assert result.symbol == "TEST"
        assert result.metrics.liquidity == 10050
        assert result.microprice.confidence == 100
        assert result.adverse_selection.score == 30
        assert result.strategy.quoted
        assert result.hedge.action is HedgeAction.HOLD
        assert result.latency_us > 0

    def test_hedge_uses_book_mid(self, engine, sample_book, default_params):
        inventory = InventoryPosition(quantity=1000, current_price=1, inventory_risk=10)
        result = engine.process_tick(sample_book, inventory, [], default_params)
        assert result.hedge.should_hedge
        assert "10050.00" in result.hedge.recommendation

    def test_hedge_falls_back_to_ledger_price(self, engine, default_params):
        book = make_book([(100, 50)], [])
        inventory = InventoryPosition(quantity=10, current_price=100, inventory_risk=50)
        result = engine.process_tick(book, inventory, [], default_params)
        assert not result.strategy.quoted
        assert result.hedge.should_hedge
        assert "500.00" in result.hedge.recommendation

    def test_degenerate_book_is_not_actionable(self, engine, flat_inventory, default_params):
        result = engine.process_tick(make_book([], []), flat_inventory, [], default_params)
        assert result.accepted
        assert not result.actionable

    def test_invalid_params_raise(self, engine, sample_book, flat_inventory):
        with pytest.raises(InvalidParameterError):
            engine.process_tick(sample_book, flat_inventory, [],
                                QuoteParameters(competition_adjustment=1.5))

    def test_latency_recorded(self, engine, sample_book, flat_inventory, default_params):
        engine.process_tick(sample_book, flat_inventory, [], default_params)
        engine.process_tick(book_at(1), flat_inventory, [], default_params)
        assert get_latency_stats()["process_tick"]["count"] == 2

    def test_late_results_flagged(self, sample_book, flat_inventory, default_params):
        engine = MarketMakingEngine(EngineConfig(max_tick_latency_us=0.000001))
        result = engine.process_tick(sample_book, flat_inventory, [], default_params)
        assert result.late
        assert result.strategy.quoted
        assert not result.actionable

    def test_invalid_config_rejected(self):
        config = EngineConfig()
        config.quote_model.risk_aversion = 0
        with pytest.raises(ConfigurationError):
            MarketMakingEngine(config)

    def test_to_dict(self, engine, sample_book, flat_inventory, default_params):
        payload = engine.process_tick(sample_book, flat_inventory, [], default_params).to_dict()
        assert payload["accepted"] is True
        assert payload["strategy"]["quoted"] is True
        assert payload["hedge"]["action"] == "hold"


class TestLastSnapshotWins:
    """Stale snapshots never produce an actionable quote."""

    def test_older_snapshot_rejected(self, engine, flat_inventory, default_params):
        newer = engine.process_tick(book_at(2), flat_inventory, [], default_params)
        older = engine.process_tick(book_at(1), flat_inventory, [], default_params)
        assert newer.accepted
        assert not older.accepted
        assert not older.strategy.quoted
        assert not older.actionable
        assert older.strategy.reasoning == ("No quote: superseded by a newer snapshot",)

    def test_resubmitted_snapshot_rejected(self, engine, flat_inventory, default_params):
        engine.process_tick(book_at(1, sequence=5), flat_inventory, [], default_params)
        again = engine.process_tick(book_at(1, sequence=5), flat_inventory, [], default_params)
        assert not again.accepted

    def test_sequence_breaks_timestamp_ties(self, engine, flat_inventory, default_params):
        engine.process_tick(book_at(1, sequence=5), flat_inventory, [], default_params)
        later = engine.process_tick(book_at(1, sequence=6), flat_inventory, [], default_params)
        earlier = engine.process_tick(book_at(1, sequence=4), flat_inventory, [], default_params)
        assert later.accepted
        assert not earlier.accepted

    def test_symbols_are_independent(self, engine, flat_inventory, default_params):
        engine.process_tick(book_at(10, symbol="A"), flat_inventory, [], default_params)
        other = engine.process_tick(book_at(1, symbol="B"), flat_inventory, [], default_params)
        assert other.accepted

    def test_concurrent_ticks_end_on_newest(self, engine, flat_inventory, default_params):
        books = [book_at(i, sequence=i) for i in range(40)]
        random.Random(7).shuffle(books)
        results = []
        lock = threading.Lock()

        def worker(chunk):
            for book in chunk:
                result = engine.process_tick(book, flat_inventory, [], default_params)
                with lock:
                    results.append(result)

        threads = [threading.Thread(target=worker, args=(books[i::4],)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 40
        assert engine.sequencer.latest("TEST") == QuoteSequencer.key(book_at(39, sequence=39))
        assert any(r.accepted and r.sequence_number == 39 for r in results)


class TestQuoteSequencer:
    """Watermark bookkeeping."""

    def test_publish_and_stale(self):
        sequencer = QuoteSequencer()
        assert not sequencer.is_stale(book_at(1))
        assert sequencer.try_publish(book_at(1))
        assert sequencer.is_stale(book_at(1))
        assert sequencer.is_stale(book_at(0))
        assert not sequencer.is_stale(book_at(2))

    def test_reset(self):
        sequencer = QuoteSequencer()
        sequencer.try_publish(book_at(5, symbol="A"))
        sequencer.try_publish(book_at(5, symbol="B"))
        sequencer.reset("A")
        assert sequencer.latest("A") is None
        assert sequencer.latest("B") is not None
        sequencer.reset()
        assert sequencer.latest("B") is None


def test_synthetic_session(engine, default_params):
    market = SyntheticMarket("SIM", seed=3, start_time=BASE_TIME)
    inventory = InventoryPosition(quantity=0, current_price=100)
    for _ in range(20):
        book = market.next_book()
        result = engine.process_tick(book, inventory, market.recent_trades(), default_params)
        assert result.accepted
        assert result.strategy.bid_price < result.strategy.ask_price
