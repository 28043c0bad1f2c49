"""Backend registry contract and the schema guard shared by all backends.

A backend registers metric families (name + help + label names, plus
buckets for histograms) and resolves per-series handles from them.
Registration is the only place that may fail; it raises
``MetricsSchemaError`` so a broken schema stops the process at startup.
"""

from __future__ import annotations

import abc
import threading
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable

from quicmetrics.errors import MetricsSchemaError
from quicmetrics.schema import validate_buckets


@runtime_checkable
class MetricFamily(Protocol):
    """A registered metric; ``labels()`` returns the handle for one series.

    Resolution is lookup-or-create and idempotent: the same label values
    always return the same handle, including under concurrent first use.
    """

    name: str
    labelnames: tuple[str, ...]

    def labels(self, **label_values: str) -> Any: ...


@runtime_checkable
class MetricsBackend(Protocol):
    """Registry primitives the backend-bound implementation is written against."""

    def register_counter(
        self, name: str, help: str, labels: Sequence[str] = ()
    ) -> MetricFamily: ...

    def register_gauge(
        self, name: str, help: str, labels: Sequence[str] = ()
    ) -> MetricFamily: ...

    def register_histogram(
        self,
        name: str,
        help: str,
        labels: Sequence[str] = (),
        buckets: Iterable[float] = (),
    ) -> MetricFamily: ...


class BaseBackend(abc.ABC):
    """Claims names before delegating creation to the concrete backend."""

    def __init__(self) -> None:
        self._names: set[str] = set()
        self._names_lock = threading.Lock()

    @property
    def registered_names(self) -> frozenset[str]:
        with self._names_lock:
            return frozenset(self._names)

    def register_counter(
        self, name: str, help: str, labels: Sequence[str] = ()
    ) -> MetricFamily:
        self._claim(name)
        return self._create_counter(name, help, tuple(labels))

    def register_gauge(
        self, name: str, help: str, labels: Sequence[str] = ()
    ) -> MetricFamily:
        self._claim(name)
        return self._create_gauge(name, help, tuple(labels))

    def register_histogram(
        self,
        name: str,
        help: str,
        labels: Sequence[str] = (),
        buckets: Iterable[float] = (),
    ) -> MetricFamily:
        bounds = validate_buckets(name, buckets)
        self._claim(name)
        return self._create_histogram(name, help, tuple(labels), bounds)

    def _claim(self, name: str) -> None:
        with self._names_lock:
            if name in self._names:
                raise MetricsSchemaError(name, "metric name already registered")
            self._names.add(name)

    @abc.abstractmethod
    def _create_counter(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily: ...

    @abc.abstractmethod
    def _create_gauge(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily: ...

    @abc.abstractmethod
    def _create_histogram(
        self, name: str, help: str, labels: tuple[str, ...], buckets: tuple[float, ...]
    ) -> MetricFamily: ...


def check_label_names(family: str, expected: tuple[str, ...], given: Iterable[str]) -> None:
    """Raise ValueError unless ``given`` is exactly the family's label names."""
    given_set = set(given)
    if given_set != set(expected):
        raise ValueError(
            f"Incorrect label names for {family!r}: expected {sorted(expected)}, "
            f"got {sorted(given_set)}"
        )
