"""In-memory backend: thread-safe accumulators that tests can read back.

Mirrors prometheus semantics (cumulative ``le`` buckets, counters refuse
negative increments) without any exposition machinery.
"""

from __future__ import annotations

import threading
from bisect import bisect_left
from dataclasses import dataclass
from typing import Any, Callable

from quicmetrics.backends.base import BaseBackend, MetricFamily, check_label_names
from quicmetrics.handles import DurationTimer
from quicmetrics.schema import MetricType


class MemoryCounter:
    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    def inc(self, amount: float = 1) -> None:
        if amount < 0:
            raise ValueError("Counters can only be incremented by non-negative amounts.")
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        with self._lock:
            return self._value


class MemoryGauge:
    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    def inc(self, amount: float = 1) -> None:
        with self._lock:
            self._value += amount

    def dec(self, amount: float = 1) -> None:
        with self._lock:
            self._value -= amount

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    @property
    def value(self) -> float:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class HistogramSnapshot:
    """Point-in-time copy of a histogram series.

    ``buckets`` holds ``(upper_bound, cumulative_count)`` pairs ending with
    ``float("inf")``.
    """

    buckets: tuple[tuple[float, int], ...]
    sum: float
    count: int


class MemoryHistogram:
    def __init__(self, bounds: tuple[float, ...]) -> None:
        self._bounds = bounds
        self._counts = [0] * (len(bounds) + 1)
        self._sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float) -> None:
        idx = bisect_left(self._bounds, value)
        with self._lock:
            self._counts[idx] += 1
            self._sum += value

    def time(self) -> DurationTimer:
        return DurationTimer(self.observe)

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            counts = list(self._counts)
            total = self._sum
        cumulative: list[tuple[float, int]] = []
        running = 0
        for bound, n in zip((*self._bounds, float("inf")), counts):
            running += n
            cumulative.append((bound, running))
        return HistogramSnapshot(buckets=tuple(cumulative), sum=total, count=running)


class _MemoryFamily:
    def __init__(
        self,
        name: str,
        type: MetricType,
        labelnames: tuple[str, ...],
        factory: Callable[[], Any],
    ) -> None:
        self.name = name
        self.type = type
        self.labelnames = labelnames
        self._factory = factory
        self._children: dict[tuple[str, ...], Any] = {}
        self._lock = threading.Lock()

    def labels(self, **label_values: str) -> Any:
        check_label_names(self.name, self.labelnames, label_values)
        key = tuple(str(label_values[n]) for n in self.labelnames)
        child = self._children.get(key)
        if child is not None:
            return child
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = self._factory()
                self._children[key] = child
            return child

    def children(self) -> dict[tuple[str, ...], Any]:
        with self._lock:
            return dict(self._children)


class InMemoryBackend(BaseBackend):
    """Keeps every series in process memory; read it back for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self._families: dict[str, _MemoryFamily] = {}

    def _create_counter(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        return self._add(_MemoryFamily(name, MetricType.COUNTER, labels, MemoryCounter))

    def _create_gauge(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        return self._add(_MemoryFamily(name, MetricType.GAUGE, labels, MemoryGauge))

    def _create_histogram(
        self, name: str, help: str, labels: tuple[str, ...], buckets: tuple[float, ...]
    ) -> MetricFamily:
        return self._add(
            _MemoryFamily(
                name, MetricType.HISTOGRAM, labels, lambda: MemoryHistogram(buckets)
            )
        )

    def _add(self, family: _MemoryFamily) -> _MemoryFamily:
        self._families[family.name] = family
        return family

    # ── Read-back ────────────────────────────────────────────────────

    def _family(self, name: str) -> _MemoryFamily:
        try:
            return self._families[name]
        except KeyError:
            raise KeyError(f"Metric not registered: {name!r}") from None

    def value(self, name: str, **labels: str) -> float:
        """Counter or gauge value of one series; 0.0 if it was never touched."""
        family = self._family(name)
        if family.type == MetricType.HISTOGRAM:
            raise TypeError(f"{name!r} is a histogram; use histogram()")
        check_label_names(name, family.labelnames, labels)
        key = tuple(str(labels[n]) for n in family.labelnames)
        child = family.children().get(key)
        return child.value if child is not None else 0.0

    def histogram(self, name: str, **labels: str) -> HistogramSnapshot | None:
        """Snapshot of one histogram series, or None if never observed."""
        family = self._family(name)
        if family.type != MetricType.HISTOGRAM:
            raise TypeError(f"{name!r} is not a histogram")
        check_label_names(name, family.labelnames, labels)
        key = tuple(str(labels[n]) for n in family.labelnames)
        child = family.children().get(key)
        return child.snapshot() if child is not None else None

    def series(self, name: str) -> list[dict[str, str]]:
        """Label combinations that have been resolved for a metric."""
        family = self._family(name)
        return [dict(zip(family.labelnames, key)) for key in family.children()]
