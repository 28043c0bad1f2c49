"""Metric handle primitives: the per-series accumulators callers mutate.

Handles are owned by the backend registry. The measurement contract only
hands out references to them. prometheus_client's labelled children already
satisfy these protocols; the other backends implement them directly.
"""

from __future__ import annotations

import time
from contextlib import AbstractContextManager
from types import TracebackType
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class Counter(Protocol):
    """Monotonically increasing accumulator."""

    def inc(self, amount: float = 1) -> None: ...


@runtime_checkable
class Gauge(Protocol):
    """Accumulator holding the latest value."""

    def inc(self, amount: float = 1) -> None: ...

    def dec(self, amount: float = 1) -> None: ...

    def set(self, value: float) -> None: ...


@runtime_checkable
class Histogram(Protocol):
    """Distribution of observed values over fixed buckets."""

    def observe(self, value: float) -> None: ...


@runtime_checkable
class TimeHistogram(Histogram, Protocol):
    """Histogram of elapsed seconds, with a timing context manager."""

    def time(self) -> AbstractContextManager[Any]: ...


class DurationTimer:
    """Context manager observing elapsed wall-clock seconds on exit."""

    def __init__(self, observe: Callable[[float], None]) -> None:
        self._observe = observe
        self._start = 0.0

    def __enter__(self) -> DurationTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._observe(max(time.perf_counter() - self._start, 0.0))


# ---------------------------------------------------------------------------
# No-op handles
# ---------------------------------------------------------------------------


class _NoopCounter:
    def inc(self, amount: float = 1) -> None:
        pass


class _NoopGauge:
    def inc(self, amount: float = 1) -> None:
        pass

    def dec(self, amount: float = 1) -> None:
        pass

    def set(self, value: float) -> None:
        pass


class _NoopHistogram:
    def observe(self, value: float) -> None:
        pass

    def time(self) -> DurationTimer:
        return DurationTimer(self.observe)


NOOP_COUNTER: Counter = _NoopCounter()
NOOP_GAUGE: Gauge = _NoopGauge()
NOOP_HISTOGRAM: Histogram = _NoopHistogram()
NOOP_TIME_HISTOGRAM: TimeHistogram = _NoopHistogram()
