"""Error types raised by the metrics layer.

Only the one-time registration phase raises. Emission paths absorb their
own failures (see cardinality.reduce_peer_ip) and never surface errors to
the transport.
"""

from __future__ import annotations


class MetricsError(Exception):
    """Base class for quicmetrics errors."""


class MetricsSchemaError(MetricsError, ValueError):
    """The metric schema is inconsistent: duplicate name or invalid buckets.

    Raised while constructing a backend-bound implementation so the process
    fails before it starts accepting connections.
    """

    def __init__(self, metric: str, reason: str) -> None:
        self.metric = metric
        self.reason = reason
        super().__init__(f"Invalid metric schema for {metric!r}: {reason}")
