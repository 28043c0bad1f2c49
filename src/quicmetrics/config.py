"""Metrics configuration, env-var driven.

All settings have safe defaults. Zero config builds a Prometheus-backed
implementation on a private registry with structured logging to stderr.

    Backend:   QUICMETRICS_BACKEND=prometheus (default) | memory | otel | noop
    Namespace: QUICMETRICS_NAMESPACE=edge  → metrics named edge_quic_...
    Flags:     QUICMETRICS_FLAGS_PATH=~/.quicmetrics/flags.yaml

Logging architecture (same composition as the transport's other services):
    Formatter: QUICMETRICS_LOG_FORMATTER=structlog (default) | stdlib
    Renderer:  QUICMETRICS_LOG_FORMAT=json (default) | console
    Level:     QUICMETRICS_LOG_LEVEL=INFO
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

_BACKENDS = ("prometheus", "memory", "otel", "noop")
_NAMESPACE_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@dataclass
class MetricsConfig:
    """Metrics configuration, env-var driven."""

    backend: str = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_BACKEND", "prometheus")
    )  # "prometheus" | "memory" | "otel" | "noop"

    namespace: str = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_NAMESPACE", "")
    )

    flags_path: str | None = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_FLAGS_PATH")
    )

    # --- OpenTelemetry ---
    otel_service_name: str = field(
        default_factory=lambda: os.environ.get("OTEL_SERVICE_NAME", "quicmetrics")
    )

    # --- Logging ---
    log_formatter: str = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_LOG_FORMATTER", "structlog")
    )  # "structlog" | "stdlib"

    log_format: str = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_LOG_FORMAT", "json")
    )  # "json" | "console"

    log_level: str = field(
        default_factory=lambda: os.environ.get("QUICMETRICS_LOG_LEVEL", "INFO")
    )

    def __post_init__(self) -> None:
        self.backend = self.backend.lower()
        if self.backend not in _BACKENDS:
            raise ValueError(
                f"Unknown metrics backend: {self.backend!r}. Available: {list(_BACKENDS)}."
            )
        if self.namespace and not _NAMESPACE_RE.match(self.namespace):
            raise ValueError(
                f"Invalid metrics namespace {self.namespace!r}: "
                "use letters, digits and underscores, not starting with a digit."
            )
