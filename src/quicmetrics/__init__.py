"""quicmetrics: instrumentation facade for a QUIC/HTTP-3 transport.

Public API:
    QuicMetrics         : the measurement contract transport code depends on
    build_metrics(cfg)  : construct the process's instance (call once at startup)
    DefaultQuicMetrics  : contract bound to a backend registry
    NoopQuicMetrics     : silent implementation for tests / disabled telemetry

Labels:
    QuicHandshakeStage, QuicWriteError, QuicInvalidInitialPacketError,
    HandshakeError, H3Error, QuicError

Cardinality:
    reduce_peer_ip(addr): /20 (IPv4) or /32 (IPv6) network for expensive labels

Transport code receives a QuicMetrics instance and mutates the handles it
returns. It never imports a backend.
"""

from quicmetrics.backends import InMemoryBackend, PrometheusBackend
from quicmetrics.cardinality import IPV4_PREFIX_LEN, IPV6_PREFIX_LEN, peer_ip_label, reduce_peer_ip
from quicmetrics.config import MetricsConfig
from quicmetrics.contract import QuicMetrics
from quicmetrics.default import DefaultQuicMetrics
from quicmetrics.errors import MetricsError, MetricsSchemaError
from quicmetrics.factory import build_metrics
from quicmetrics.flags import MetricFlags
from quicmetrics.handles import Counter, Gauge, Histogram, TimeHistogram
from quicmetrics.labels import (
    H3Error,
    HandshakeError,
    QuicError,
    QuicHandshakeStage,
    QuicInvalidInitialPacketError,
    QuicWriteError,
)
from quicmetrics.logging import get_logger, setup_logging
from quicmetrics.noop import NoopQuicMetrics
from quicmetrics.runtime import InstrumentedCoroutine, instrument
from quicmetrics.schema import METRICS, MetricDef, MetricType

__all__ = [
    # Contract
    "QuicMetrics",
    "DefaultQuicMetrics",
    "NoopQuicMetrics",
    "build_metrics",
    # Handles
    "Counter",
    "Gauge",
    "Histogram",
    "TimeHistogram",
    # Labels
    "QuicHandshakeStage",
    "QuicWriteError",
    "QuicInvalidInitialPacketError",
    "HandshakeError",
    "H3Error",
    "QuicError",
    # Cardinality
    "reduce_peer_ip",
    "peer_ip_label",
    "IPV4_PREFIX_LEN",
    "IPV6_PREFIX_LEN",
    # Backends
    "PrometheusBackend",
    "InMemoryBackend",
    # Schema
    "MetricDef",
    "MetricType",
    "METRICS",
    # Config / errors / logging
    "MetricsConfig",
    "MetricFlags",
    "MetricsError",
    "MetricsSchemaError",
    "get_logger",
    "setup_logging",
    # Runtime
    "InstrumentedCoroutine",
    "instrument",
]
