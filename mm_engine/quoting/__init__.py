"""
Quoting module for the Market-Making Engine.

Avellaneda-Stoikov optimal bid/ask derivation with Kelly sizing.
"""

from .quote_calculator import (
    QuoteCalculator,
    QuoteParameters,
    MarketMakingStrategy,
)

__all__ = [
    "QuoteCalculator",
    "QuoteParameters",
    "MarketMakingStrategy",
]
