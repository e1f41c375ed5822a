"""Metrics the voting worker exposes: the active validator set id and the votes sent."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Union

_NAME_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_U64_LIMIT = 1 << 64


class MetricsError(ValueError):
    """Raised for invalid metric definitions, values or duplicate registrations."""


class _Metric:
    def __init__(self, name: str, help: str) -> None:
        if not _NAME_PATTERN.match(name):
            raise MetricsError(f"invalid metric name: {name!r}")
        if not help:
            raise MetricsError(f"metric {name!r} needs a help text")
        self.name = name
        self.help = help
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, value={self.value})"


class Gauge(_Metric):
    """An unsigned 64-bit value that can be set to anything."""

    def set(self, value: int) -> None:
        """Replace the current value."""
        if value < 0 or value >= _U64_LIMIT:
            raise MetricsError(f"gauge {self.name!r} cannot hold {value}")
        with self._lock:
            self._value = value


class Counter(_Metric):
    """An unsigned 64-bit value that only grows."""

    def inc(self) -> None:
        """Increase the counter by one."""
        with self._lock:
            if self._value + 1 >= _U64_LIMIT:
                raise MetricsError(f"counter {self.name!r} overflowed")
            self._value += 1


class Registry:
    """A collection of metrics with unique names."""

    def __init__(self) -> None:
        self._metrics: Dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: Union[Gauge, Counter]) -> Union[Gauge, Counter]:
        """Add ``metric`` and return it; raise if its name is already taken."""
        with self._lock:
            if metric.name in self._metrics:
                raise MetricsError(f"duplicate metric registration: {metric.name!r}")
            self._metrics[metric.name] = metric
        return metric

    def get(self, name: str) -> Optional[_Metric]:
        """Return the metric registered under ``name``, if any."""
        with self._lock:
            return self._metrics.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)


@dataclass
class Metrics:
    """The worker's metrics."""

    beefy_validator_set_id: Gauge
    beefy_gadget_votes: Counter

    @classmethod
    def register(cls, registry: Registry) -> "Metrics":
        """Create the worker's metrics and register them with ``registry``."""
        gauge = registry.register(
            Gauge("beefy_validator_set_id", "Current BEEFY active validator set id.")
        )
        counter = registry.register(
            Counter("beefy_gadget_votes_total", "Total number of vote messages gossiped.")
        )
        return cls(beefy_validator_set_id=gauge, beefy_gadget_votes=counter)