"""Metric store port definition (interface and metric names)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol

from iperf_exporter.ports.measurement import Target

__all__ = [
    "ERRORS",
    "GAUGE_NAMES",
    "RECEIVED_BITS_PER_SECOND",
    "RECEIVED_RETRANSMITS",
    "SENT_BITS_PER_SECOND",
    "SENT_RETRANSMITS",
    "MetricStorePort",
]

SENT_BITS_PER_SECOND = "sent_bits_per_second"
SENT_RETRANSMITS = "sent_retransmits"
RECEIVED_BITS_PER_SECOND = "received_bits_per_second"
RECEIVED_RETRANSMITS = "received_retransmits"
ERRORS = "errors"

GAUGE_NAMES: tuple[str, ...] = (
    SENT_BITS_PER_SECOND,
    SENT_RETRANSMITS,
    RECEIVED_BITS_PER_SECOND,
    RECEIVED_RETRANSMITS,
)


class MetricStorePort(Protocol):
    """Interface for the live metric values published per target.

    Gauges are either present or absent; the error counter only grows.
    Implementations must be safe to read while being written.
    """

    def set(self, name: str, target: Target, value: float) -> None:
        """Set a gauge (last write wins)."""
        ...

    def clear(self, name: str, target: Target) -> None:
        """Return a gauge to the absent state."""
        ...

    def increment(self, name: str, target: Target) -> None:
        """Add 1 to a counter."""
        ...

    def get(self, name: str, target: Target) -> float | None:
        """Return the current value, None when absent."""
        ...

    def set_many(self, target: Target, values: Mapping[str, float]) -> None:
        """Set several gauges as one group."""
        ...

    def clear_many(self, target: Target, names: Iterable[str]) -> None:
        """Clear several gauges as one group."""
        ...
