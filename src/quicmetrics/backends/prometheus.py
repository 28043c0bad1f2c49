"""Prometheus backend: prometheus_client instruments on an explicit registry.

The backend never touches prometheus_client's process-wide REGISTRY unless
it is handed that registry. Exposition (``start_http_server``, a WSGI/ASGI
app) stays with whoever owns the process; ``expose()`` is there for
diagnostics and tests.
"""

from __future__ import annotations

from typing import Any

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from quicmetrics.backends.base import BaseBackend, MetricFamily
from quicmetrics.errors import MetricsSchemaError


class _PrometheusFamily:
    """Adapts unlabelled prometheus metrics to the ``labels()`` resolution API.

    Labelled children are cached by prometheus_client itself under its own
    lock, so repeated resolution returns the same child.
    """

    def __init__(self, metric: Any, name: str, labelnames: tuple[str, ...]) -> None:
        self._metric = metric
        self.name = name
        self.labelnames = labelnames

    def labels(self, **label_values: str) -> Any:
        if not self.labelnames:
            if label_values:
                raise ValueError(f"{self.name!r} takes no labels, got {sorted(label_values)}")
            return self._metric
        return self._metric.labels(**label_values)


class PrometheusBackend(BaseBackend):
    """Registers metrics with a prometheus_client ``CollectorRegistry``."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        super().__init__()
        self.registry = registry if registry is not None else CollectorRegistry()

    def _create_counter(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        return self._build(Counter, name, help, labels)

    def _create_gauge(
        self, name: str, help: str, labels: tuple[str, ...]
    ) -> MetricFamily:
        return self._build(Gauge, name, help, labels)

    def _create_histogram(
        self, name: str, help: str, labels: tuple[str, ...], buckets: tuple[float, ...]
    ) -> MetricFamily:
        return self._build(Histogram, name, help, labels, buckets=buckets)

    def _build(
        self, cls: type, name: str, help: str, labels: tuple[str, ...], **kwargs: Any
    ) -> MetricFamily:
        try:
            metric = cls(name, help, labelnames=labels, registry=self.registry, **kwargs)
        except ValueError as exc:
            # Duplicated timeseries in a shared registry, or an invalid name.
            raise MetricsSchemaError(name, str(exc)) from exc
        return _PrometheusFamily(metric, name, labels)

    def expose(self) -> bytes:
        """Text exposition format of everything in the registry."""
        return generate_latest(self.registry)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of one exported sample, e.g. ``quic_udp_drop_count_total``."""
        return self.registry.get_sample_value(name, labels or {})
