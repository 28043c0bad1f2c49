"""Optional-metric toggles: YAML config + env var overrides.

Priority: env var > YAML file > default.
Env vars use QUICMETRICS_{FLAG_NAME} convention
(e.g. QUICMETRICS_EXPENSIVE_INITIAL_PACKETS=on).

Flags are read once at startup and handed to the backend-bound
implementation. A disabled metric is never registered and its contract
method returns a no-op handle.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

_TRUTHY = {"1", "true", "on", "yes"}
_FALSY = {"0", "false", "off", "no"}


@dataclass(frozen=True)
class MetricFlags:
    # Expensive to compute: walks the stream map on every update.
    maximum_writable_streams: bool = False
    # Per-peer-network Initial packet counters (reduced IP labels).
    expensive_initial_packets: bool = False

    @classmethod
    def load(cls, path: Path | str | None = None) -> MetricFlags:
        """Load flags from YAML file, then override with env vars."""
        file_values: dict[str, bool] = {}

        if path is not None:
            file_path = Path(path).expanduser()
            if file_path.exists():
                raw = yaml.safe_load(file_path.read_text()) or {}
                if isinstance(raw, dict):
                    for k, v in raw.items():
                        if isinstance(v, bool):
                            file_values[k] = v
                        elif isinstance(v, str):
                            file_values[k] = v.lower() in _TRUTHY

        # Build kwargs: file values first, then env overrides
        kwargs: dict[str, bool] = {}
        for f in fields(cls):
            name = f.name
            env_key = f"QUICMETRICS_{name.upper()}"

            val = os.environ.get(env_key, "").lower()
            if val in _TRUTHY:
                kwargs[name] = True
            elif val in _FALSY:
                kwargs[name] = False
            elif name in file_values:
                # Unset or non-boolean env values fall through to the file.
                kwargs[name] = file_values[name]

        return cls(**kwargs)

    @classmethod
    def all_enabled(cls) -> MetricFlags:
        return cls(**{f.name: True for f in fields(cls)})

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def is_enabled(self, flag_name: str | None) -> bool:
        """True for ungated metrics (``None``), else the flag's value."""
        if flag_name is None:
            return True
        return bool(getattr(self, flag_name, False))
