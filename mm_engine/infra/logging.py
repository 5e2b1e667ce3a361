"""
Logging for the Market-Making Engine
====================================

Logging built on the standard library, shaped for a quoting hot path:
- Categorized records (market data, signal, quote, risk, ...)
- Optional JSON structured output for machine parsing
- Latency measurement integration via a context manager
- Thread-safe rolling latency statistics

HOT PATH NOTES:
- Per-tick detail is logged at DEBUG and is filtered out by default
- Degenerate data and suppressed quotes are logged at WARNING
- Latency is always recorded, whether or not the record is emitted
"""

import json
import logging
import sys
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Optional


class LogCategory(Enum):
    """Log categories for filtering and routing."""
    MARKET_DATA = "market_data"
    SIGNAL = "signal"
    QUOTE = "quote"
    RISK = "risk"
    PERFORMANCE = "performance"
    SYSTEM = "system"


@dataclass
class LatencyMeasurement:
    """
    Captures latency for a specific operation.

    Uses time.perf_counter_ns(): nanosecond resolution, roughly 100ns
    accuracy on most systems.
    """
    operation: str
    start_ns: int
    end_ns: int = 0
    category: LogCategory = LogCategory.PERFORMANCE
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ns(self) -> int:
        return self.end_ns - self.start_ns

    @property
    def duration_us(self) -> float:
        return self.duration_ns / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "duration_ns": self.duration_ns,
            "duration_us": self.duration_us,
            "category": self.category.value,
            "metadata": self.metadata,
        }


class LatencyTracker:
    """
    Rolling latency statistics per operation.

    Keeps at most window_size samples per operation.
    """

    def __init__(self, window_size: int = 10000):
        self._window_size = window_size
        self._measurements: Dict[str, Deque[int]] = {}
        self._lock = threading.Lock()

    def record(self, measurement: LatencyMeasurement) -> None:
        """Record a latency measurement."""
        with self._lock:
            if measurement.operation not in self._measurements:
                self._measurements[measurement.operation] = deque(maxlen=self._window_size)
            self._measurements[measurement.operation].append(measurement.duration_ns)

    def get_stats(self, operation: str) -> Dict[str, float]:
        """
        Latency statistics for an operation.

        p50 is the typical tick; p99 is the tail that decides whether a
        quote is still fresh when it reaches the order manager.
        """
        with self._lock:
            samples = list(self._measurements.get(operation, ()))
        return self._summarize(samples)

    def get_all_stats(self) -> Dict[str, Dict[str, float]]:
        """Statistics for all tracked operations."""
        with self._lock:
            snapshot = {op: list(samples) for op, samples in self._measurements.items()}
        return {op: self._summarize(samples) for op, samples in snapshot.items()}

    def reset(self) -> None:
        with self._lock:
            self._measurements.clear()

    @staticmethod
    def _summarize(samples) -> Dict[str, float]:
        if not samples:
            return {}
        ordered = sorted(samples)
        n = len(ordered)
        return {
            "count": n,
            "min_ns": ordered[0],
            "max_ns": ordered[-1],
            "mean_ns": sum(ordered) / n,
            "p50_ns": ordered[n // 2],
            "p99_ns": ordered[int(n * 0.99)] if n >= 100 else ordered[-1],
        }


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "category"):
            log_data["category"] = record.category
        if hasattr(record, "symbol"):
            log_data["symbol"] = record.symbol
        if hasattr(record, "latency_ns"):
            log_data["latency_ns"] = record.latency_ns
        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        return json.dumps(log_data, default=str)


class EngineLogger:
    """
    Categorized logger for engine components.

    Wraps a named logging.Logger so that the host application can still
    attach its own handlers; configure() installs a console handler for
    standalone use.
    """

    _instance: Optional["EngineLogger"] = None
    _latency_tracker: LatencyTracker = LatencyTracker()

    def __init__(self, name: str = "mm_engine"):
        self._logger = logging.getLogger(name)
        self._handler: Optional[logging.Handler] = None

    @classmethod
    def get_instance(cls) -> "EngineLogger":
        """Shared logger for all engine modules."""
        if cls._instance is None:
            cls._instance = EngineLogger()
        return cls._instance

    @classmethod
    def get_latency_tracker(cls) -> LatencyTracker:
        return cls._latency_tracker

    @property
    def level(self) -> int:
        return self._logger.getEffectiveLevel()

    def configure(self, level: str = "INFO", structured: bool = False) -> None:
        """
        Install a single console handler at the given level.

        Calling again replaces the previous handler rather than stacking.
        """
        if self._handler is not None:
            self._logger.removeHandler(self._handler)

        handler = logging.StreamHandler(sys.stderr)
        if structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(message)s",
                datefmt="%H:%M:%S",
            ))
        self._logger.addHandler(handler)
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._handler = handler

    def log(
        self,
        level: int,
        message: str,
        category: LogCategory = LogCategory.SYSTEM,
        symbol: Optional[str] = None,
        **kwargs
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "category": category.value,
            "extra_data": kwargs,
        }
        if symbol:
            extra["symbol"] = symbol
        self._logger.log(level, message, extra=extra)

    def debug(self, message: str, **kwargs) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.log(logging.ERROR, message, **kwargs)

    @contextmanager
    def measure_latency(
        self,
        operation: str,
        category: LogCategory = LogCategory.PERFORMANCE,
        log_level: int = logging.DEBUG,
        **metadata
    ):
        """
        Context manager to measure and log operation latency.

        Usage:
            with logger.measure_latency("process_tick", symbol="ETH-USD") as m:
                ...
            m.duration_us
        """
        measurement = LatencyMeasurement(
            operation=operation,
            start_ns=time.perf_counter_ns(),
            category=category,
            metadata=metadata,
        )
        try:
            yield measurement
        finally:
            measurement.end_ns = time.perf_counter_ns()
            self._latency_tracker.record(measurement)
            self.log(
                log_level,
                f"{operation} completed in {measurement.duration_us:.2f}us",
                category=category,
                latency_ns=measurement.duration_ns,
                **metadata
            )

    def log_signal(
        self,
        signal_name: str,
        symbol: str,
        value: float,
        confidence: float,
        **kwargs
    ) -> None:
        """Log a computed signal for later analysis."""
        self.log(
            logging.DEBUG,
            f"SIGNAL: {signal_name} {symbol} = {value:.6f} (conf: {confidence:.2f})",
            category=LogCategory.SIGNAL,
            symbol=symbol,
            signal_name=signal_name,
            signal_value=value,
            confidence=confidence,
            **kwargs
        )

    def log_quote(
        self,
        symbol: str,
        bid_price: float,
        ask_price: float,
        bid_size: float,
        ask_size: float,
        risk_score: float,
        **kwargs
    ) -> None:
        """Log a quote recommendation handed to the order manager."""
        self.log(
            logging.DEBUG,
            f"QUOTE: {symbol} {bid_size:.2f} @ {bid_price:.6f} / {ask_size:.2f} @ {ask_price:.6f} "
            f"(risk: {risk_score:.1f})",
            category=LogCategory.QUOTE,
            symbol=symbol,
            bid_price=bid_price,
            ask_price=ask_price,
            risk_score=risk_score,
            **kwargs
        )

    def log_risk_event(
        self,
        event_type: str,
        message: str,
        severity: str = "WARNING",
        **kwargs
    ) -> None:
        """
        Log risk events (suppressed quotes, hedge triggers, informed flow).
        """
        level = logging.WARNING if severity == "WARNING" else logging.INFO
        self.log(
            level,
            f"RISK [{event_type}]: {message}",
            category=LogCategory.RISK,
            event_type=event_type,
            severity=severity,
            **kwargs
        )


# Global logger instance
logger = EngineLogger.get_instance()


def get_logger() -> EngineLogger:
    """Get the global engine logger instance."""
    return logger


def configure_logging(level: str = "INFO", structured: bool = False) -> EngineLogger:
    """Configure the global engine logger and return it."""
    logger.configure(level=level, structured=structured)
    return logger


def get_latency_stats() -> Dict[str, Dict[str, float]]:
    """Latency statistics for all tracked operations."""
    return EngineLogger.get_latency_tracker().get_all_stats()
