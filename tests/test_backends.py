"""Tests for backend registries: registration guard, idempotent resolution, accumulators."""

from __future__ import annotations

import threading

import pytest
from prometheus_client import CollectorRegistry
from prometheus_client import Counter as PromCounter

from quicmetrics.backends import InMemoryBackend, MetricsBackend, PrometheusBackend
from quicmetrics.errors import MetricsSchemaError
from quicmetrics.handles import Counter, Gauge, Histogram, TimeHistogram

BACKENDS = [InMemoryBackend, PrometheusBackend]


@pytest.fixture(params=BACKENDS, ids=lambda cls: cls.__name__)
def backend(request):
    return request.param()


class TestRegistration:
    def test_satisfies_backend_protocol(self, backend):
        assert isinstance(backend, MetricsBackend)

    def test_duplicate_name_rejected(self, backend):
        backend.register_counter("quic_dup", "first")
        with pytest.raises(MetricsSchemaError, match="quic_dup"):
            backend.register_counter("quic_dup", "second")

    def test_duplicate_across_types_rejected(self, backend):
        backend.register_gauge("quic_dup", "gauge")
        with pytest.raises(MetricsSchemaError):
            backend.register_histogram("quic_dup", "hist", buckets=(1.0, 2.0))

    def test_invalid_buckets_rejected(self, backend):
        with pytest.raises(MetricsSchemaError):
            backend.register_histogram("quic_bad", "bad", buckets=(5.0, 1.0))
        # Rejected buckets do not claim the name.
        backend.register_histogram("quic_bad", "good", buckets=(1.0, 5.0))

    def test_registered_names(self, backend):
        backend.register_counter("quic_a", "a")
        backend.register_gauge("quic_b", "b")
        assert backend.registered_names == frozenset({"quic_a", "quic_b"})

    def test_concurrent_registration_yields_one_family(self, backend):
        results: list[object] = []
        errors: list[Exception] = []
        barrier = threading.Barrier(8)

        def register():
            barrier.wait()
            try:
                results.append(backend.register_counter("quic_race", "race"))
            except MetricsSchemaError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=register) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 1
        assert len(errors) == 7


class TestResolution:
    def test_same_labels_same_handle(self, backend):
        family = backend.register_counter("quic_c", "c", ("reason",))
        assert family.labels(reason="x") is family.labels(reason="x")
        assert family.labels(reason="x") is not family.labels(reason="y")

    def test_unlabelled_family_resolves(self, backend):
        family = backend.register_gauge("quic_g", "g")
        assert family.labels() is family.labels()

    def test_wrong_label_names_rejected(self, backend):
        family = backend.register_counter("quic_c", "c", ("reason",))
        with pytest.raises(ValueError):
            family.labels(stage="x")

    def test_handles_satisfy_protocols(self, backend):
        counter = backend.register_counter("quic_c", "c").labels()
        gauge = backend.register_gauge("quic_g", "g").labels()
        hist = backend.register_histogram("quic_h_seconds", "h", buckets=(0.1, 1.0)).labels()
        assert isinstance(counter, Counter)
        assert isinstance(gauge, Gauge)
        assert isinstance(hist, Histogram)
        assert isinstance(hist, TimeHistogram)

    def test_concurrent_first_resolution_shares_one_handle(self, backend):
        family = backend.register_counter("quic_c", "c", ("reason",))
        handles: list[object] = []
        barrier = threading.Barrier(16)

        def resolve():
            barrier.wait()
            handle = family.labels(reason="same")
            handle.inc()
            handles.append(handle)

        threads = [threading.Thread(target=resolve) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(h) for h in handles}) == 1


class TestInMemoryBackend:
    def test_counter_value(self):
        backend = InMemoryBackend()
        family = backend.register_counter("quic_c", "c", ("reason",))
        family.labels(reason="a").inc()
        family.labels(reason="a").inc(2)
        assert backend.value("quic_c", reason="a") == 3.0
        assert backend.value("quic_c", reason="never") == 0.0

    def test_counter_rejects_negative(self):
        backend = InMemoryBackend()
        with pytest.raises(ValueError):
            backend.register_counter("quic_c", "c").labels().inc(-1)

    def test_gauge_inc_dec_set(self):
        backend = InMemoryBackend()
        gauge = backend.register_gauge("quic_g", "g").labels()
        gauge.inc()
        gauge.inc()
        gauge.dec()
        assert backend.value("quic_g") == 1.0
        gauge.set(42.5)
        assert backend.value("quic_g") == 42.5

    def test_histogram_buckets_are_cumulative_le(self):
        backend = InMemoryBackend()
        hist = backend.register_histogram("quic_h", "h", buckets=(0.0, 1.0, 5.0)).labels()
        for v in (0.0, 0.5, 1.0, 3.0, 100.0):
            hist.observe(v)
        snap = backend.histogram("quic_h")
        assert snap.count == 5
        assert snap.sum == pytest.approx(104.5)
        assert snap.buckets == (
            (0.0, 1),
            (1.0, 3),
            (5.0, 4),
            (float("inf"), 5),
        )

    def test_histogram_time_context_manager(self):
        backend = InMemoryBackend()
        hist = backend.register_histogram("quic_h_seconds", "h", buckets=(1.0,)).labels()
        with hist.time():
            pass
        snap = backend.histogram("quic_h_seconds")
        assert snap.count == 1
        assert snap.buckets[0] == (1.0, 1)

    def test_unobserved_histogram_is_none(self):
        backend = InMemoryBackend()
        backend.register_histogram("quic_h", "h", buckets=(1.0,))
        assert backend.histogram("quic_h") is None

    def test_series_lists_resolved_label_sets(self):
        backend = InMemoryBackend()
        family = backend.register_counter("quic_c", "c", ("reason", "peer_ip"))
        family.labels(reason="a", peer_ip="10.0.0.0/20")
        assert backend.series("quic_c") == [{"reason": "a", "peer_ip": "10.0.0.0/20"}]

    def test_unknown_metric(self):
        with pytest.raises(KeyError):
            InMemoryBackend().value("quic_missing")

    def test_type_mismatch(self):
        backend = InMemoryBackend()
        backend.register_counter("quic_c", "c")
        backend.register_histogram("quic_h", "h", buckets=(1.0,))
        with pytest.raises(TypeError):
            backend.histogram("quic_c")
        with pytest.raises(TypeError):
            backend.value("quic_h")


class TestPrometheusBackend:
    def test_private_registry_by_default(self):
        a, b = PrometheusBackend(), PrometheusBackend()
        assert a.registry is not b.registry
        a.register_counter("quic_same", "a")
        b.register_counter("quic_same", "b")

    def test_counter_sample_and_exposition(self):
        backend = PrometheusBackend()
        backend.register_counter("quic_c", "help text", ("reason",)).labels(reason="x").inc(3)
        assert backend.sample("quic_c_total", {"reason": "x"}) == 3.0
        text = backend.expose().decode()
        assert "# HELP quic_c_total help text" in text
        assert 'quic_c_total{reason="x"} 3.0' in text

    def test_histogram_uses_given_buckets(self):
        backend = PrometheusBackend()
        backend.register_histogram("quic_h", "h", buckets=(0.0, 2.5)).labels().observe(1.0)
        assert backend.sample("quic_h_bucket", {"le": "0.0"}) == 0.0
        assert backend.sample("quic_h_bucket", {"le": "2.5"}) == 1.0
        assert backend.sample("quic_h_bucket", {"le": "+Inf"}) == 1.0

    def test_collision_in_shared_registry(self):
        registry = CollectorRegistry()
        PromCounter("quic_taken", "registered elsewhere", registry=registry)
        backend = PrometheusBackend(registry)
        with pytest.raises(MetricsSchemaError, match="quic_taken"):
            backend.register_counter("quic_taken", "again")

    def test_unlabelled_family_rejects_labels(self):
        family = PrometheusBackend().register_counter("quic_c", "c")
        with pytest.raises(ValueError):
            family.labels(reason="x")
