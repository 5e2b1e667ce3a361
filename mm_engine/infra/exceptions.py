"""
Exceptions for the Market-Making Engine
=======================================

Two families of failure are kept apart:

1. REJECTED INPUT (raised):
   - Invalid configuration constants (risk aversion <= 0, ...)
   - Invalid per-call parameters (negative spread, competition >= 1, ...)
   - Malformed boundary data (negative level quantity, ...)

2. DEGENERATE MARKET DATA (never raised):
   - Empty or one-sided books, zero liquidity, short trade history
   - These produce neutral metrics or a no-quote sentinel instead, so a
     live quoting loop is never halted by a bad tick.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field_name = field_name
        self.value = value

    def __str__(self) -> str:
        parts = [self.args[0]]
        if self.field_name is not None:
            parts.append(f"(field: {self.field_name}, value: {self.value!r})")
        return " ".join(parts)


class ConfigurationError(EngineError):
    """Raised when the engine configuration tree is invalid."""
    pass


class InvalidParameterError(EngineError, ValueError):
    """Raised when a per-call parameter is rejected at the call boundary."""
    pass


class InvalidInputError(InvalidParameterError):
    """Raised when boundary data (levels, trades, positions) is malformed."""
    pass
