"""OpenTelemetry backend: instruments from a meter, buckets through Views.

Requires quicmetrics[otel] (opentelemetry-sdk).

OTel instruments are not split into per-label children, so each handle
binds its label attributes and forwards to the shared instrument. Custom
histogram buckets only apply when the MeterProvider is created with the
Views from ``create_views()``; ``OtelBackend.with_provider()`` does that.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, Sequence

from quicmetrics.backends.base import BaseBackend, MetricFamily, check_label_names
from quicmetrics.handles import DurationTimer
from quicmetrics.schema import METRICS, MetricDef, qualified_name


def _require_otel() -> None:
    try:
        import opentelemetry.sdk.metrics  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            "Install 'quicmetrics[otel]' to use the OpenTelemetry backend"
        ) from exc


class _OtelCounter:
    def __init__(self, instrument: Any, attributes: dict[str, str]) -> None:
        self._instrument = instrument
        self._attributes = attributes

    def inc(self, amount: float = 1) -> None:
        if amount < 0:
            raise ValueError("Counters can only be incremented by non-negative amounts.")
        self._instrument.add(amount, self._attributes)


class _OtelGauge:
    """Synchronous gauge with inc/dec; the running value is tracked locally."""

    def __init__(self, instrument: Any, attributes: dict[str, str]) -> None:
        self._instrument = instrument
        self._attributes = attributes
        self._value = 0.0
        self._lock = threading.Lock()

    def inc(self, amount: float = 1) -> None:
        with self._lock:
            self._value += amount
            self._instrument.set(self._value, self._attributes)

    def dec(self, amount: float = 1) -> None:
        self.inc(-amount)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)
            self._instrument.set(self._value, self._attributes)


class _OtelHistogram:
    def __init__(self, instrument: Any, attributes: dict[str, str]) -> None:
        self._instrument = instrument
        self._attributes = attributes

    def observe(self, value: float) -> None:
        self._instrument.record(value, self._attributes)

    def time(self) -> DurationTimer:
        return DurationTimer(self.observe)


class _OtelFamily:
    def __init__(
        self,
        instrument: Any,
        name: str,
        labelnames: tuple[str, ...],
        handle: Callable[[Any, dict[str, str]], Any],
    ) -> None:
        self._instrument = instrument
        self.name = name
        self.labelnames = labelnames
        self._handle = handle
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
                child = self._handle(self._instrument, dict(zip(self.labelnames, key)))
                self._children[key] = child
            return child


class OtelBackend(BaseBackend):
    """Registers metrics as OpenTelemetry instruments on ``meter``."""

    def __init__(self, meter: Any) -> None:
        super().__init__()
        self._meter = meter
        self.provider: Any = None

    @classmethod
    def with_provider(
        cls,
        readers: Sequence[Any] = (),
        namespace: str = "",
        service_name: str = "quicmetrics",
        definitions: Iterable[MetricDef] = METRICS,
    ) -> OtelBackend:
        """Build a MeterProvider carrying the schema's bucket Views."""
        _require_otel()
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.resources import Resource

        provider = MeterProvider(
            resource=Resource.create({"service.name": service_name}),
            metric_readers=list(readers),
            views=create_views(definitions, namespace),
        )
        backend = cls(provider.get_meter("quicmetrics"))
        backend.provider = provider
        return backend

    def _create_counter(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        instrument = self._meter.create_counter(name, description=help)
        return _OtelFamily(instrument, name, labels, _OtelCounter)

    def _create_gauge(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        instrument = self._meter.create_gauge(name, description=help)
        return _OtelFamily(instrument, name, labels, _OtelGauge)

    def _create_histogram(
        self, name: str, help: str, labels: tuple[str, ...], buckets: tuple[float, ...]
    ) -> MetricFamily:
        instrument = self._meter.create_histogram(name, description=help)
        return _OtelFamily(instrument, name, labels, _OtelHistogram)


def create_views(
    definitions: Iterable[MetricDef] = METRICS, namespace: str = ""
) -> list[Any]:
    """Create OTel Views for histograms with custom bucket boundaries.

    Without Views, histograms use OTel's default buckets.
    """
    from opentelemetry.sdk.metrics.view import (
        ExplicitBucketHistogramAggregation,
        View,
    )

    views = []
    for m in definitions:
        if m.type.is_histogram and m.buckets:
            views.append(
                View(
                    instrument_name=qualified_name(m.name, namespace),
                    aggregation=ExplicitBucketHistogramAggregation(
                        boundaries=list(m.buckets),
                    ),
                )
            )
    return views
