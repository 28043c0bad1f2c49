"""Tests for the OpenTelemetry backend and its histogram Views."""

from __future__ import annotations

import pytest

pytest.importorskip("opentelemetry.sdk.metrics")

from opentelemetry.sdk.metrics.export import InMemoryMetricReader  # noqa: E402

from quicmetrics.backends.otel import OtelBackend, create_views  # noqa: E402
from quicmetrics.default import DefaultQuicMetrics  # noqa: E402
from quicmetrics.errors import MetricsSchemaError  # noqa: E402
from quicmetrics.flags import MetricFlags  # noqa: E402
from quicmetrics.labels import QuicHandshakeStage, QuicWriteError  # noqa: E402
from quicmetrics.schema import METRICS, get_metric  # noqa: E402


def _points(reader: InMemoryMetricReader) -> dict[str, list]:
    data = reader.get_metrics_data()
    out: dict[str, list] = {}
    if data is None:
        return out
    for rm in data.resource_metrics:
        for sm in rm.scope_metrics:
            for metric in sm.metrics:
                out.setdefault(metric.name, []).extend(metric.data.data_points)
    return out


@pytest.fixture()
def reader():
    return InMemoryMetricReader()


@pytest.fixture()
def metrics(reader):
    backend = OtelBackend.with_provider(readers=[reader])
    yield DefaultQuicMetrics(backend, MetricFlags.all_enabled())
    backend.provider.shutdown()


class TestCreateViews:
    def test_one_view_per_histogram(self):
        views = create_views()
        histograms = [m for m in METRICS if m.type.is_histogram and m.buckets]
        assert len(views) == len(histograms)

    def test_namespaced_views_match_namespaced_instruments(self, reader):
        backend = OtelBackend.with_provider(readers=[reader], namespace="edge")
        try:
            metrics = DefaultQuicMetrics(backend, namespace="edge")
            metrics.max_loss_pct().observe(3)
            points = _points(reader)["edge_quic_max_loss_pct"]
            expected = list(get_metric("quic_max_loss_pct").buckets)
            assert list(points[0].explicit_bounds) == expected
        finally:
            backend.provider.shutdown()


class TestInstruments:
    def test_counter_records_with_attributes(self, metrics, reader):
        metrics.write_errors(QuicWriteError.PARTIAL).inc()
        metrics.write_errors(QuicWriteError.PARTIAL).inc(2)
        points = _points(reader)["quic_write_errors"]
        assert len(points) == 1
        assert points[0].attributes == {"reason": "partial"}
        assert points[0].value == 3

    def test_gauge_tracks_running_value(self, metrics, reader):
        gauge = metrics.connections_in_memory()
        gauge.inc()
        gauge.inc()
        gauge.dec()
        points = _points(reader)["quic_connections_in_memory"]
        assert points[-1].value == 1

    def test_histogram_uses_schema_buckets(self, metrics, reader):
        metrics.handshake_time_seconds(QuicHandshakeStage.DERIVE_KEYS).observe(0.002)
        points = _points(reader)["quic_handshake_time_seconds"]
        assert points[0].count == 1
        expected = list(get_metric("quic_handshake_time_seconds").buckets)
        assert list(points[0].explicit_bounds) == expected

    def test_histogram_timer(self, metrics, reader):
        with metrics.runtime_task_poll_duration_histogram("quic_conn").time():
            pass
        points = _points(reader)["runtime_task_poll_duration_seconds"]
        assert points[0].attributes == {"task": "quic_conn"}
        assert points[0].count == 1

    def test_negative_counter_increment_rejected(self, metrics):
        with pytest.raises(ValueError):
            metrics.udp_drop_count().inc(-1)


class TestRegistration:
    def test_duplicate_rejected(self, reader):
        backend = OtelBackend.with_provider(readers=[reader])
        try:
            backend.register_counter("quic_udp_drop_count", "drops")
            with pytest.raises(MetricsSchemaError):
                backend.register_counter("quic_udp_drop_count", "drops again")
        finally:
            backend.provider.shutdown()

    def test_handles_are_idempotent(self, metrics):
        assert metrics.write_errors(QuicWriteError.ERR) is metrics.write_errors(
            QuicWriteError.ERR
        )
