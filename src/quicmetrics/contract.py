"""The measurement contract: every event the transport may report.

Transport code depends on ``QuicMetrics`` only, never on a concrete
backend. One instance is built at startup (see ``factory.build_metrics``)
and injected into whatever owns the transport.

Each method returns the handle for the matching series; the caller mutates
it (``inc``, ``set``, ``observe``). Methods never block, never do I/O and
never raise because of backend state.
"""

from __future__ import annotations

import abc

from quicmetrics.cardinality import PeerAddress
from quicmetrics.handles import Counter, Gauge, Histogram, TimeHistogram
from quicmetrics.labels import (
    H3Error,
    HandshakeError,
    QuicError,
    QuicHandshakeStage,
    QuicInvalidInitialPacketError,
    QuicWriteError,
)


class QuicMetrics(abc.ABC):
    """Port: metrics emitted across QUIC connections."""

    @abc.abstractmethod
    def connections_in_memory(self) -> Gauge:
        """Number of QUIC connections currently in memory."""

    @abc.abstractmethod
    def maximum_writable_streams(self) -> Histogram:
        """Maximum number of writable QUIC streams in a connection.

        Optional: a no-op handle unless the ``maximum_writable_streams``
        flag is enabled.
        """

    @abc.abstractmethod
    def handshake_time_seconds(self, stage: QuicHandshakeStage) -> TimeHistogram:
        """Overhead of QUIC handshake processing stage."""

    @abc.abstractmethod
    def write_errors(self, reason: QuicWriteError) -> Counter:
        """Number of error and partial writes while sending QUIC packets."""

    @abc.abstractmethod
    def invalid_cid_packet_count(self, reason: BaseException | str) -> Counter:
        """Number of QUIC packets received where the CID could not be verified.

        ``reason`` is the parser's error (or its description) and is used
        as-is. This is the one free-form label: parser error descriptions
        are a small set in practice.
        """

    @abc.abstractmethod
    def accepted_initial_packet_count(self) -> Counter:
        """Number of accepted QUIC Initial packets."""

    @abc.abstractmethod
    def expensive_accepted_initial_packet_count(self, peer_ip: PeerAddress) -> Counter:
        """Number of accepted QUIC Initial packets, labelled by peer network."""

    @abc.abstractmethod
    def rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError
    ) -> Counter:
        """Number of QUIC packets received but not associated with an active connection."""

    @abc.abstractmethod
    def expensive_rejected_initial_packet_count(
        self, reason: QuicInvalidInitialPacketError, peer_ip: PeerAddress
    ) -> Counter:
        """Rejected Initial packets, labelled by reason and peer network."""

    @abc.abstractmethod
    def utilized_bandwidth(self) -> Gauge:
        """Combined utilized bandwidth of all open connections (max over the past two minutes)."""

    @abc.abstractmethod
    def max_bandwidth_mbps(self) -> Histogram:
        """The highest utilized bandwidth reported during the lifetime of the connection."""

    @abc.abstractmethod
    def max_loss_pct(self) -> Histogram:
        """The highest momentary loss reported during the lifetime of the connection."""

    @abc.abstractmethod
    def udp_drop_count(self) -> Counter:
        """Number of UDP packets dropped when receiving."""

    @abc.abstractmethod
    def failed_handshakes(self, reason: HandshakeError) -> Counter:
        """Number of failed QUIC handshakes."""

    @abc.abstractmethod
    def local_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        """Number of HTTP/3 connection closures generated locally."""

    @abc.abstractmethod
    def local_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        """Number of QUIC connection closures generated locally."""

    @abc.abstractmethod
    def peer_h3_conn_close_error_count(self, reason: H3Error) -> Counter:
        """Number of HTTP/3 connection closures generated by peer."""

    @abc.abstractmethod
    def peer_quic_conn_close_error_count(self, reason: QuicError) -> Counter:
        """Number of QUIC connection closures generated by peer."""

    # ── Runtime task metrics ─────────────────────────────────────────

    @abc.abstractmethod
    def runtime_task_schedule_delay_histogram(self, task: str) -> TimeHistogram:
        """Histogram of task schedule delays."""

    @abc.abstractmethod
    def runtime_task_poll_duration_histogram(self, task: str) -> TimeHistogram:
        """Histogram of task poll durations."""

    @abc.abstractmethod
    def runtime_task_total_poll_time_micros(self, task: str) -> Counter:
        """Total poll time of a task in microseconds; a rough waker health signal."""
