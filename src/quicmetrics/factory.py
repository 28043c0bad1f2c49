"""Build the process's metrics instance: configure once, inject everywhere.

There is no module-level instance. Whoever owns the transport calls
``build_metrics()`` at startup, before accepting connections, and passes
the result down. Schema errors raise here, never later.
"""

from __future__ import annotations

from quicmetrics.backends.base import BaseBackend, MetricsBackend
from quicmetrics.config import MetricsConfig
from quicmetrics.contract import QuicMetrics
from quicmetrics.default import DefaultQuicMetrics
from quicmetrics.flags import MetricFlags
from quicmetrics.logging import get_logger
from quicmetrics.noop import NoopQuicMetrics


def create_backend(config: MetricsConfig) -> BaseBackend | None:
    """Backend named by ``config.backend``; ``None`` for the no-op backend."""
    if config.backend == "noop":
        return None
    if config.backend == "memory":
        from quicmetrics.backends.memory import InMemoryBackend

        return InMemoryBackend()
    if config.backend == "otel":
        from quicmetrics.backends.otel import OtelBackend

        get_logger(__name__).warning(
            "metrics.pipeline.no_readers",
            hint="Build OtelBackend.with_provider(readers=[...]) to export OTel metrics",
        )
        return OtelBackend.with_provider(
            namespace=config.namespace,
            service_name=config.otel_service_name,
        )
    if config.backend == "prometheus":
        from quicmetrics.backends.prometheus import PrometheusBackend

        return PrometheusBackend()
    raise ValueError(f"Unknown metrics backend: {config.backend!r}")


def build_metrics(
    config: MetricsConfig | None = None,
    flags: MetricFlags | None = None,
    backend: MetricsBackend | None = None,
) -> QuicMetrics:
    """Resolve config and flags, register the schema, return the contract.

    Raises MetricsSchemaError if the schema cannot be registered.
    """
    cfg = config or MetricsConfig()
    metric_flags = flags or MetricFlags.load(cfg.flags_path)
    log = get_logger(__name__)

    if backend is None:
        backend = create_backend(cfg)
    if backend is None:
        log.info("metrics.disabled", backend=cfg.backend)
        return NoopQuicMetrics()

    metrics = DefaultQuicMetrics(backend, metric_flags, namespace=cfg.namespace)
    log.info(
        "metrics.registered",
        backend=type(backend).__name__,
        metric_count=len(metrics.registered),
        flags=metric_flags.to_dict(),
    )
    return metrics
