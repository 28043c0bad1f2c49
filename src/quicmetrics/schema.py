"""Declarative metric definitions: single source of truth for all metrics.

Every metric is defined once here. The backend-bound implementation
registers these definitions at construction and the contract methods look
their handles up by name. No metric is defined anywhere else.

Bucket boundaries are fixed per metric name. Changing a distribution means
adding a metric under a new name; existing definitions are never edited in
place.

Adding a metric:
    1. Add a MetricDef below
    2. Add the contract method in contract.py and its DefaultQuicMetrics body
    3. Done. Every backend picks it up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from quicmetrics.errors import MetricsSchemaError


class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIME_HISTOGRAM = "time_histogram"

    @property
    def is_histogram(self) -> bool:
        return self in (MetricType.HISTOGRAM, MetricType.TIME_HISTOGRAM)


@dataclass(frozen=True)
class MetricDef:
    """A single metric definition."""

    name: str
    type: MetricType
    description: str
    labels: tuple[str, ...] = ()
    buckets: tuple[float, ...] | None = None  # histograms only
    flag: str | None = None  # MetricFlags field gating an optional metric

    @property
    def optional(self) -> bool:
        return self.flag is not None


_WRITABLE_STREAMS_BUCKETS = (
    0.0, 5.0, 10.0, 100.0, 1000.0, 2000.0, 3000.0, 10000.0, 20000.0, 50000.0,
)
_HANDSHAKE_BUCKETS = (
    1e-5, 2e-5, 5e-5, 1e-4, 2e-4, 5e-4, 1e-3, 2e-3, 5e-3,
    1e-2, 2e-2, 5e-2, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0,
)
_BANDWIDTH_MBPS_BUCKETS = (
    0.0, 1.0, 2.0, 5.0, 10.0, 20.0, 50.0, 100.0, 200.0, 300.0, 500.0, 750.0,
    1000.0, 1500.0, 2000.0, 2500.0, 3000.0, 3500.0, 4000.0, 4500.0, 5000.0,
    6000.0, 7000.0, 10000.0,
)
_LOSS_PCT_BUCKETS = (
    0.0, 0.1, 0.2, 0.5, 1.0, 2.0, 3.0, 4.0, 5.0, 10.0, 15.0, 20.0, 25.0, 50.0, 100.0,
)
# Sub-millisecond resolution: scheduler delays and poll times are mostly < 1ms.
_TASK_TIMING_BUCKETS = (
    0.0, 1e-4, 2e-4, 3e-4, 4e-4, 5e-4, 6e-4, 7e-4, 8e-4, 9e-4,
    1e-3, 1e-2, 2e-2, 4e-2, 8e-2, 1e-1, 1.0,
)

# Names follow Prometheus conventions:
#   Counter:   "quic_foo"          → exported as "quic_foo_total"
#   Histogram: "quic_bar_seconds"  → exported as "quic_bar_seconds_bucket" etc.
#   Gauge:     "quic_baz"          → exported as "quic_baz"
QUIC_METRICS: tuple[MetricDef, ...] = (
    # ── Connections ──────────────────────────────────────────────────
    MetricDef(
        "quic_connections_in_memory", MetricType.GAUGE,
        "Number of QUIC connections currently in memory",
    ),
    MetricDef(
        "quic_maximum_writable_streams", MetricType.HISTOGRAM,
        "Maximum number of writable QUIC streams in a connection",
        buckets=_WRITABLE_STREAMS_BUCKETS,
        flag="maximum_writable_streams",
    ),
    # ── Handshake ────────────────────────────────────────────────────
    MetricDef(
        "quic_handshake_time_seconds", MetricType.TIME_HISTOGRAM,
        "Overhead of QUIC handshake processing stage", ("stage",),
        buckets=_HANDSHAKE_BUCKETS,
    ),
    MetricDef(
        "quic_failed_handshakes", MetricType.COUNTER,
        "Number of failed QUIC handshakes", ("reason",),
    ),
    # ── Packets ──────────────────────────────────────────────────────
    MetricDef(
        "quic_write_errors", MetricType.COUNTER,
        "Number of error and partial writes while sending QUIC packets", ("reason",),
    ),
    MetricDef(
        "quic_invalid_cid_packet_count", MetricType.COUNTER,
        "Number of QUIC packets received where the CID could not be verified",
        ("reason",),
    ),
    MetricDef(
        "quic_accepted_initial_packet_count", MetricType.COUNTER,
        "Number of accepted QUIC Initial packets",
    ),
    MetricDef(
        "quic_expensive_accepted_initial_packet_count", MetricType.COUNTER,
        "Number of accepted QUIC Initial packets using expensive label(s)",
        ("peer_ip",),
        flag="expensive_initial_packets",
    ),
    MetricDef(
        "quic_rejected_initial_packet_count", MetricType.COUNTER,
        "Number of QUIC packets received but not associated with an active connection",
        ("reason",),
    ),
    MetricDef(
        "quic_expensive_rejected_initial_packet_count", MetricType.COUNTER,
        "Number of QUIC packets received but not associated with an active "
        "connection using expensive label(s)",
        ("reason", "peer_ip"),
        flag="expensive_initial_packets",
    ),
    MetricDef(
        "quic_udp_drop_count", MetricType.COUNTER,
        "Number of UDP packets dropped when receiving",
    ),
    # ── Path quality ─────────────────────────────────────────────────
    MetricDef(
        "quic_utilized_bandwidth", MetricType.GAUGE,
        "Combined utilized bandwidth of all open connections "
        "(max over the past two minutes)",
    ),
    MetricDef(
        "quic_max_bandwidth_mbps", MetricType.HISTOGRAM,
        "The highest utilized bandwidth reported during the lifetime of the connection",
        buckets=_BANDWIDTH_MBPS_BUCKETS,
    ),
    MetricDef(
        "quic_max_loss_pct", MetricType.HISTOGRAM,
        "The highest momentary loss reported during the lifetime of the connection",
        buckets=_LOSS_PCT_BUCKETS,
    ),
    # ── Connection close ─────────────────────────────────────────────
    MetricDef(
        "quic_local_h3_conn_close_error_count", MetricType.COUNTER,
        "Number of HTTP/3 connection closures generated locally", ("reason",),
    ),
    MetricDef(
        "quic_local_quic_conn_close_error_count", MetricType.COUNTER,
        "Number of QUIC connection closures generated locally", ("reason",),
    ),
    MetricDef(
        "quic_peer_h3_conn_close_error_count", MetricType.COUNTER,
        "Number of HTTP/3 connection closures generated by peer", ("reason",),
    ),
    MetricDef(
        "quic_peer_quic_conn_close_error_count", MetricType.COUNTER,
        "Number of QUIC connection closures generated by peer", ("reason",),
    ),
)

RUNTIME_METRICS: tuple[MetricDef, ...] = (
    MetricDef(
        "runtime_task_schedule_delay_seconds", MetricType.TIME_HISTOGRAM,
        "Histogram of task schedule delays", ("task",),
        buckets=_TASK_TIMING_BUCKETS,
    ),
    MetricDef(
        "runtime_task_poll_duration_seconds", MetricType.TIME_HISTOGRAM,
        "Histogram of task poll durations", ("task",),
        buckets=_TASK_TIMING_BUCKETS,
    ),
    MetricDef(
        "runtime_task_total_poll_time_micros", MetricType.COUNTER,
        "Total time spent polling a task, in microseconds", ("task",),
    ),
)

METRICS: tuple[MetricDef, ...] = QUIC_METRICS + RUNTIME_METRICS

_BY_NAME: dict[str, MetricDef] = {m.name: m for m in METRICS}


def get_metric(name: str) -> MetricDef:
    """Look a definition up by its schema name."""
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown metric: {name!r}") from None


def validate_buckets(name: str, buckets: Iterable[float] | None) -> tuple[float, ...]:
    """Check histogram bucket bounds: non-empty, finite, strictly increasing."""
    if buckets is None:
        raise MetricsSchemaError(name, "histogram has no buckets")
    bounds = tuple(float(b) for b in buckets)
    if not bounds:
        raise MetricsSchemaError(name, "histogram has empty buckets")
    for b in bounds:
        if not math.isfinite(b):
            raise MetricsSchemaError(name, f"bucket boundary {b!r} is not finite")
    for prev, cur in zip(bounds, bounds[1:]):
        if cur <= prev:
            raise MetricsSchemaError(
                name, f"buckets not strictly increasing: {prev!r} then {cur!r}"
            )
    return bounds


def qualified_name(name: str, namespace: str = "") -> str:
    """Schema name with the configured namespace prefix, if any."""
    return f"{namespace}_{name}" if namespace else name
