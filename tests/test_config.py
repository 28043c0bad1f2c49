"""Tests for env-driven MetricsConfig."""

from __future__ import annotations

import pytest

from quicmetrics.config import MetricsConfig

_ENV_VARS = (
    "QUICMETRICS_BACKEND",
    "QUICMETRICS_NAMESPACE",
    "QUICMETRICS_FLAGS_PATH",
    "QUICMETRICS_LOG_FORMATTER",
    "QUICMETRICS_LOG_FORMAT",
    "QUICMETRICS_LOG_LEVEL",
    "OTEL_SERVICE_NAME",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_defaults(self):
        cfg = MetricsConfig()
        assert cfg.backend == "prometheus"
        assert cfg.namespace == ""
        assert cfg.flags_path is None
        assert cfg.log_formatter == "structlog"
        assert cfg.log_format == "json"
        assert cfg.log_level == "INFO"
        assert cfg.otel_service_name == "quicmetrics"


class TestEnv:
    def test_env_read_at_construction(self, monkeypatch):
        monkeypatch.setenv("QUICMETRICS_BACKEND", "Memory")
        monkeypatch.setenv("QUICMETRICS_NAMESPACE", "edge")
        monkeypatch.setenv("QUICMETRICS_FLAGS_PATH", "/etc/quicmetrics/flags.yaml")
        cfg = MetricsConfig()
        assert cfg.backend == "memory"
        assert cfg.namespace == "edge"
        assert cfg.flags_path == "/etc/quicmetrics/flags.yaml"

    def test_explicit_args_win(self, monkeypatch):
        monkeypatch.setenv("QUICMETRICS_BACKEND", "otel")
        assert MetricsConfig(backend="noop").backend == "noop"


class TestValidation:
    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown metrics backend"):
            MetricsConfig(backend="statsd")

    @pytest.mark.parametrize("ns", ["9lives", "has-dash", "dotted.name"])
    def test_invalid_namespace(self, ns):
        with pytest.raises(ValueError, match="namespace"):
            MetricsConfig(namespace=ns)

    def test_valid_namespace(self):
        assert MetricsConfig(namespace="edge_pop1").namespace == "edge_pop1"
