"""Tests for the declarative metric schema: completeness, validity, invariants."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from quicmetrics.errors import MetricsSchemaError
from quicmetrics.flags import MetricFlags
from quicmetrics.schema import (
    METRICS,
    QUIC_METRICS,
    RUNTIME_METRICS,
    MetricType,
    get_metric,
    qualified_name,
    validate_buckets,
)


class TestMetricsSchemaCompleteness:
    """The METRICS tuple contains every event the contract reports."""

    def test_metrics_count(self):
        assert len(QUIC_METRICS) == 18
        assert len(RUNTIME_METRICS) == 3
        assert METRICS == QUIC_METRICS + RUNTIME_METRICS

    def test_all_metric_types_represented(self):
        types = {m.type for m in METRICS}
        assert types == set(MetricType)

    def test_close_counters_present(self):
        names = {m.name for m in METRICS}
        for origin in ("local", "peer"):
            for proto in ("h3", "quic"):
                assert f"quic_{origin}_{proto}_conn_close_error_count" in names

    def test_initial_packet_metrics_present(self):
        names = {m.name for m in METRICS}
        assert "quic_accepted_initial_packet_count" in names
        assert "quic_expensive_accepted_initial_packet_count" in names
        assert "quic_rejected_initial_packet_count" in names
        assert "quic_expensive_rejected_initial_packet_count" in names


class TestMetricsSchemaUniqueness:
    def test_no_duplicate_names(self):
        names = [m.name for m in METRICS]
        dupes = [n for n in names if names.count(n) > 1]
        assert len(names) == len(set(names)), f"Duplicate names: {dupes}"


class TestMetricsSchemaHistogramBuckets:
    def test_all_histograms_have_buckets(self):
        for m in METRICS:
            if m.type.is_histogram:
                assert m.buckets, f"{m.name} histogram missing buckets"

    def test_histogram_buckets_are_sorted(self):
        for m in METRICS:
            if m.type.is_histogram:
                for i in range(1, len(m.buckets)):
                    assert m.buckets[i] > m.buckets[i - 1], (
                        f"{m.name} buckets not sorted: {m.buckets}"
                    )

    def test_histogram_buckets_pass_validation(self):
        for m in METRICS:
            if m.type.is_histogram:
                assert validate_buckets(m.name, m.buckets) == m.buckets

    def test_non_histograms_have_no_buckets(self):
        for m in METRICS:
            if not m.type.is_histogram:
                assert m.buckets is None, f"{m.name} should not have buckets"

    def test_loss_buckets_are_fine_grained_below_one_percent(self):
        loss = get_metric("quic_max_loss_pct").buckets
        assert [b for b in loss if b < 1.0] == [0.0, 0.1, 0.2, 0.5]
        assert loss[-1] == 100.0

    def test_task_timing_buckets_have_sub_millisecond_resolution(self):
        buckets = get_metric("runtime_task_schedule_delay_seconds").buckets
        assert len([b for b in buckets if 0 < b < 1e-3]) == 9


class TestMetricsSchemaLabels:
    def test_labels_are_tuples_of_strings(self):
        for m in METRICS:
            assert isinstance(m.labels, tuple)
            for label in m.labels:
                assert isinstance(label, str) and label

    def test_only_expensive_metrics_carry_peer_ip(self):
        for m in METRICS:
            if "peer_ip" in m.labels:
                assert "expensive" in m.name
                assert m.flag == "expensive_initial_packets"


class TestOptionalMetrics:
    def test_optional_flags_exist_on_metric_flags(self):
        flag_names = set(MetricFlags().to_dict())
        for m in METRICS:
            if m.optional:
                assert m.flag in flag_names

    def test_expected_optional_set(self):
        optional = {m.name for m in METRICS if m.optional}
        assert optional == {
            "quic_maximum_writable_streams",
            "quic_expensive_accepted_initial_packet_count",
            "quic_expensive_rejected_initial_packet_count",
        }


class TestMetricsSchemaConventions:
    def test_names_are_prefixed(self):
        for m in METRICS:
            assert m.name.startswith(("quic_", "runtime_")), m.name

    def test_counter_names_do_not_end_with_total(self):
        """prometheus_client adds _total automatically."""
        for m in METRICS:
            if m.type == MetricType.COUNTER:
                assert not m.name.endswith("_total"), m.name

    def test_time_histograms_end_with_seconds(self):
        for m in METRICS:
            if m.type == MetricType.TIME_HISTOGRAM:
                assert m.name.endswith("_seconds"), m.name

    def test_metricdef_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            METRICS[0].name = "changed"  # type: ignore[misc]

    def test_get_metric_unknown(self):
        with pytest.raises(KeyError):
            get_metric("quic_nope")

    def test_qualified_name(self):
        assert qualified_name("quic_udp_drop_count") == "quic_udp_drop_count"
        assert qualified_name("quic_udp_drop_count", "edge") == "edge_quic_udp_drop_count"


class TestValidateBuckets:
    @pytest.mark.parametrize(
        "buckets",
        [None, (), (1.0, 1.0), (2.0, 1.0), (0.0, float("inf")), (float("nan"),)],
    )
    def test_invalid_specs_rejected(self, buckets):
        with pytest.raises(MetricsSchemaError) as exc_info:
            validate_buckets("quic_bad", buckets)
        assert exc_info.value.metric == "quic_bad"
        assert "quic_bad" in str(exc_info.value)

    def test_first_boundary_may_be_zero(self):
        assert validate_buckets("quic_ok", [0, 1, 2]) == (0.0, 1.0, 2.0)
