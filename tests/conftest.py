"""Pytest configuration and fixtures."""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Allow running the suite from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from mm_engine.data import InventoryPosition  # noqa: E402
from mm_engine.infra import EngineLogger  # noqa: E402
from mm_engine.quoting import QuoteParameters  # noqa: E402
from tests.factories import make_book  # noqa: E402


@pytest.fixture(autouse=True)
def reset_latency_tracker():
    """Latency samples are process-wide; start every test with none."""
    EngineLogger.get_latency_tracker().reset()
    yield


@pytest.fixture
def sample_book():
    """
    Single-level book from the worked example.

    Best bid 100 x 50, best ask 101 x 50, mid 100.5.
    """
    return make_book([(100, 50)], [(101, 50)])


@pytest.fixture
def deep_book():
    """
    Six levels per side, 10 units each, one tick apart.

    Bids 100..95, asks 101..106.
    """
    bids = [(100 - i, 10) for i in range(6)]
    asks = [(101 + i, 10) for i in range(6)]
    return make_book(bids, asks)


@pytest.fixture
def flat_inventory():
    return InventoryPosition(quantity=0, current_price=Decimal("100.5"))


@pytest.fixture
def default_params():
    return QuoteParameters(base_spread_bps=10)
