"""DefaultQuicMetrics: the measurement contract bound to a backend registry.

Construction registers every schema entry whose flag is enabled, one
registration call per metric. Any registration failure propagates as
``MetricsSchemaError``; build the instance before accepting connections.

After construction no method raises because of backend state: label-less
handles are resolved once and reused, labelled ones resolve through the
family (idempotent lookup-or-create), disabled optional metrics hand out
no-op handles.
"""

from __future__ import annotations

import itertools
from typing import Any, TypeVar

from quicmetrics.backends.base import MetricFamily, MetricsBackend
from quicmetrics.cardinality import PeerAddress, peer_ip_label
from quicmetrics.contract import QuicMetrics
from quicmetrics.flags import MetricFlags
from quicmetrics.handles import (
    NOOP_COUNTER,
    NOOP_HISTOGRAM,
    Counter,
    Gauge,
    Histogram,
    TimeHistogram,
)
from quicmetrics.labels import (
    H3Error,
    HandshakeError,
    QuicError,
    QuicHandshakeStage,
    QuicInvalidInitialPacketError,
    QuicWriteError,
)
from quicmetrics.logging import get_logger
from quicmetrics.schema import METRICS, MetricDef, MetricType, qualified_name

E = TypeVar("E")

# Unreducible peer addresses are logged on the first drop and every Nth after.
_DROP_LOG_EVERY = 1024


def _label(value: Any, enum_cls: type[E]) -> str:
    if not isinstance(value, enum_cls):
        raise TypeError(
            f"Expected {enum_cls.__name__}, got {type(value).__name__}: {value!r}"
        )
    return value.value  # type: ignore[attr-defined]


class DefaultQuicMetrics(QuicMetrics):
    """Standard implementation of ``QuicMetrics`` over a ``MetricsBackend``."""

    def __init__(
        self,
        backend: MetricsBackend,
        flags: MetricFlags | None = None,
        namespace: str = "",
    ) -> None:
        self.backend = backend
        self.flags = flags or MetricFlags()
        self.namespace = namespace
        self._families: dict[str, MetricFamily] = {}
        self._log = get_logger(__name__)
        self._drops = {
            "quic_expensive_accepted_initial_packet_count": itertools.count(),
            "quic_expensive_rejected_initial_packet_count": itertools.count(),
        }

        for definition in METRICS:
            if not self.flags.is_enabled(definition.flag):
                continue
            self._families[definition.name] = self._register(definition)

        self._connections_in_memory = self._unlabelled("quic_connections_in_memory")
        self._maximum_writable_streams = self._unlabelled(
            "quic_maximum_writable_streams", NOOP_HISTOGRAM
        )
        self._accepted_initial_packet_count = self._unlabelled(
            "quic_accepted_initial_packet_count"
        )
        self._utilized_bandwidth = self._unlabelled("quic_utilized_bandwidth")
        self._max_bandwidth_mbps = self._unlabelled("quic_max_bandwidth_mbps")
        self._max_loss_pct = self._unlabelled("quic_max_loss_pct")
        self._udp_drop_count = self._unlabelled("quic_udp_drop_count")

        self._log.debug(
            "metrics.registered",
            count=len(self._families),
            namespace=namespace or None,
            flags=self.flags.to_dict(),
        )

    @property
    def registered(self) -> tuple[str, ...]:
        """Schema names of the metrics this instance registered."""
        return tuple(self._families)

    def _register(self, definition: MetricDef) -> MetricFamily:
        name = qualified_name(definition.name, self.namespace)
        if definition.type == MetricType.COUNTER:
            return self.backend.register_counter(
                name, definition.description, definition.labels
            )
        if definition.type == MetricType.GAUGE:
            return self.backend.register_gauge(
                name, definition.description, definition.labels
            )
        return self.backend.register_histogram(
            name, definition.description, definition.labels, definition.buckets or ()
        )

    def _unlabelled(self, name: str, disabled: Any = None) -> Any:
        family = self._families.get(name)
        if family is None:
            if disabled is None:
                raise KeyError(f"Required metric missing from schema: {name!r}")
            return disabled
        return family.labels()

    def _resolve(self, name: str, **labels: str) -> Any:
        return self._families[name].labels(**labels)

    # ── Connections ──────────────────────────────────────────────────

    def connections_in_memory(self) -> Gauge:
        return self._connections_in_memory

    def maximum_writable_streams(self) -> Histogram:
        return self._maximum_writable_streams

    # ── Handshake ────────────────────────────────────────────────────

    def handshake_time_seconds(self, stage: QuicHandshakeStage) -> TimeHistogram:
        return self._resolve(
            "quic_handshake_time_seconds", stage=_label(stage, QuicHandshakeStage)
        )

    def failed_handshakes(self, reason: HandshakeError) -> Counter:
        return self._resolve("quic_failed_handshakes", reason=_label(reason, HandshakeError))

    # ── Packets ──────────────────────────────────────────────────────

    def write_errors(self, reason: QuicWriteError) -> Counter:
        return self._resolve("quic_write_errors", reason=_label(reason, QuicWriteError))

    def invalid_cid_packet_count(self, reason: BaseException | str) -> Counter:
        return self._resolve("quic_invalid_cid_packet_count", reason=str(reason))

    def accepted_initial_packet_count(self) -> Counter:
        return self._accepted_initial_packet_count

    def expensive_accepted_initial_packet_count(self, peer_ip: PeerAddress) -> Counter:
        name = "quic_expensive_accepted_initial_packet_count"
        if name not in self._families:
            return NOOP_COUNTER
        network = peer_ip_label(peer_ip)
        if network is None:
            return self._dropped(name, peer_ip)
        return self._resolve(name, peer_ip=network)

    def rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError
    ) -> Counter:
        return self._resolve(
            "quic_rejected_initial_packet_count",
            reason=_label(reason, QuicInvalidInitialPacketError),
        )

    def expensive_rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError, peer_ip: PeerAddress
    ) -> Counter:
        name = "quic_expensive_rejected_initial_packet_count"
        reason_label = _label(reason, QuicInvalidInitialPacketError)
        if name not in self._families:
            return NOOP_COUNTER
        network = peer_ip_label(peer_ip)
        if network is None:
            return self._dropped(name, peer_ip)
        return self._resolve(name, reason=reason_label, peer_ip=network)

    def udp_drop_count(self) -> Counter:
        return self._udp_drop_count

    # ── Path quality ─────────────────────────────────────────────────

    def utilized_bandwidth(self) -> Gauge:
        return self._utilized_bandwidth

    def max_bandwidth_mbps(self) -> Histogram:
        return self._max_bandwidth_mbps

    def max_loss_pct(self) -> Histogram:
        return self._max_loss_pct

    # ── Connection close ─────────────────────────────────────────────

    def local_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        return self._resolve(
            "quic_local_h3_conn_close_error_count", reason=_label(reason, H3Error)
        )

    def local_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        return self._resolve(
            "quic_local_quic_conn_close_error_count", reason=_label(reason, QuicError)
        )

    def peer_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        return self._resolve(
            "quic_peer_h3_conn_close_error_count", reason=_label(reason, H3Error)
        )

    def peer_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        return self._resolve(
            "quic_peer_quic_conn_close_error_count", reason=_label(reason, QuicError)
        )

    # ── Runtime task metrics ─────────────────────────────────────────

    def runtime_task_schedule_delay_histogram(self, task: str) -> TimeHistogram:
        return self._resolve("runtime_task_schedule_delay_seconds", task=task)

    def runtime_task_poll_duration_histogram(self, task: str) -> TimeHistogram:
        return self._resolve("runtime_task_poll_duration_seconds", task=task)

    def runtime_task_total_poll_time_micros(self, task: str) -> Counter:
        return self._resolve("runtime_task_total_poll_time_micros", task=task)

    def _dropped(self, name: str, peer_ip: object) -> Counter:
        """Drop an observation whose peer address cannot be reduced.

        Debug level only, sampled: the first drop per metric and every
        ``_DROP_LOG_EVERY``th after. The address itself is never logged.
        """
        dropped = next(self._drops[name]) + 1
        if dropped == 1 or dropped % _DROP_LOG_EVERY == 0:
            self._log.debug(
                "metrics.peer_ip.unreducible",
                metric=name,
                address_type=type(peer_ip).__name__,
                dropped=dropped,
            )
        return NOOP_COUNTER
