"""Backend registries the measurement contract can be bound to.

PrometheusBackend and InMemoryBackend need only the base install;
OtelBackend requires quicmetrics[otel].
"""

from quicmetrics.backends.base import BaseBackend, MetricFamily, MetricsBackend
from quicmetrics.backends.memory import HistogramSnapshot, InMemoryBackend
from quicmetrics.backends.prometheus import PrometheusBackend

__all__ = [
    "BaseBackend",
    "HistogramSnapshot",
    "InMemoryBackend",
    "MetricFamily",
    "MetricsBackend",
    "PrometheusBackend",
]
