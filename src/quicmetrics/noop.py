"""NoopQuicMetrics: silent contract implementation for tests and disabled telemetry."""

from __future__ import annotations

from quicmetrics.cardinality import PeerAddress
from quicmetrics.contract import QuicMetrics
from quicmetrics.handles import (
    NOOP_COUNTER,
    NOOP_GAUGE,
    NOOP_HISTOGRAM,
    NOOP_TIME_HISTOGRAM,
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


class NoopQuicMetrics(QuicMetrics):
    """Every method returns a shared no-op handle."""

    def connections_in_memory(self) -> Gauge:
        return NOOP_GAUGE

    def maximum_writable_streams(self) -> Histogram:
        return NOOP_HISTOGRAM

    def handshake_time_seconds(self, stage: QuicHandshakeStage) -> TimeHistogram:
        return NOOP_TIME_HISTOGRAM

    def write_errors(self, reason: QuicWriteError) -> Counter:
        return NOOP_COUNTER

    def invalid_cid_packet_count(self, reason: BaseException | str) -> Counter:
        return NOOP_COUNTER

    def accepted_initial_packet_count(self) -> Counter:
        return NOOP_COUNTER

    def expensive_accepted_initial_packet_count(self, peer_ip: PeerAddress) -> Counter:
        return NOOP_COUNTER

    def rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError
    ) -> Counter:
        return NOOP_COUNTER

    def expensive_rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError, peer_ip: PeerAddress
    ) -> Counter:
        return NOOP_COUNTER

    def utilized_bandwidth(self) -> Gauge:
        return NOOP_GAUGE

    def max_bandwidth_mbps(self) -> Histogram:
        return NOOP_HISTOGRAM

    def max_loss_pct(self) -> Histogram:
        return NOOP_HISTOGRAM

    def udp_drop_count(self) -> Counter:
        return NOOP_COUNTER

    def failed_handshakes(self, reason: HandshakeError) -> Counter:
        return NOOP_COUNTER

    def local_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        return NOOP_COUNTER

    def local_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        return NOOP_COUNTER

    def peer_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        return NOOP_COUNTER

    def peer_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        return NOOP_COUNTER

    def runtime_task_schedule_delay_histogram(self, task: str) -> TimeHistogram:
        return NOOP_TIME_HISTOGRAM

    def runtime_task_poll_duration_histogram(self, task: str) -> TimeHistogram:
        return NOOP_TIME_HISTOGRAM

    def runtime_task_total_poll_time_micros(self, task: str) -> Counter:
        return NOOP_COUNTER
