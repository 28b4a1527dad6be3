"""Thread-safe metric store exported through prometheus_client."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from iperf_exporter.ports.measurement import Target
from iperf_exporter.ports.metrics import (
    ERRORS,
    RECEIVED_BITS_PER_SECOND,
    RECEIVED_RETRANSMITS,
    SENT_BITS_PER_SECOND,
    SENT_RETRANSMITS,
    MetricStorePort,
)

__all__ = ["MetricStore", "MetricSpec", "DEFAULT_METRICS"]

LABEL_NAMES = ("server", "port")


@dataclass(slots=True, frozen=True)
class MetricSpec:
    """Static description of one exported metric."""

    name: str
    documentation: str
    is_counter: bool = False


DEFAULT_METRICS: tuple[MetricSpec, ...] = (
    MetricSpec(SENT_BITS_PER_SECOND, "Sender throughput of the last iperf3 run in bits/s."),
    MetricSpec(SENT_RETRANSMITS, "Sender retransmits of the last iperf3 run."),
    MetricSpec(RECEIVED_BITS_PER_SECOND, "Receiver throughput of the last iperf3 run in bits/s."),
    MetricSpec(RECEIVED_RETRANSMITS, "Receiver retransmits of the last iperf3 run."),
    MetricSpec(ERRORS, "Failed iperf3 runs since process start.", is_counter=True),
)


class MetricStore(MetricStorePort, Collector):
    """Latest iperf3 values per target, rendered on demand for scrapes.

    Acts as a custom prometheus_client collector: register it in a
    CollectorRegistry and every scrape takes a consistent snapshot.
    One lock guards all values, so a group written with set_many or
    cleared with clear_many is never observed half applied.

    Metric names are `<namespace>_<subsystem>_<name>`; counters get the
    usual `_total` suffix on exposition.
    """

    def __init__(
        self,
        *,
        namespace: str = "network",
        subsystem: str = "iperf3",
        metrics: Iterable[MetricSpec] = DEFAULT_METRICS,
    ) -> None:
        """Initialize an empty store.

        Args:
            namespace: First component of exported metric names.
            subsystem: Second component of exported metric names.
            metrics: Metrics this store accepts.
        """
        self._prefix = "_".join(part for part in (namespace, subsystem) if part)
        self._specs: dict[str, MetricSpec] = {spec.name: spec for spec in metrics}
        self._values: dict[str, dict[Target, float]] = {name: {} for name in self._specs}
        self._lock = threading.Lock()

    def _spec(self, name: str, *, counter: bool) -> MetricSpec:
        try:
            spec = self._specs[name]
        except KeyError:
            raise KeyError(f"Unknown metric: {name}") from None
        if spec.is_counter != counter:
            kind = "counter" if spec.is_counter else "gauge"
            raise ValueError(f"Metric {name} is a {kind}")
        return spec

    def set(self, name: str, target: Target, value: float) -> None:
        """Set a gauge for target (last write wins)."""
        self._spec(name, counter=False)
        with self._lock:
            self._values[name][target] = float(value)

    def clear(self, name: str, target: Target) -> None:
        """Remove a gauge for target so it is omitted from exposition."""
        self._spec(name, counter=False)
        with self._lock:
            self._values[name].pop(target, None)

    def increment(self, name: str, target: Target) -> None:
        """Add 1 to a counter for target."""
        self._spec(name, counter=True)
        with self._lock:
            series = self._values[name]
            series[target] = series.get(target, 0.0) + 1.0

    def get(self, name: str, target: Target) -> float | None:
        """Return the current value for target, None when absent."""
        if name not in self._specs:
            raise KeyError(f"Unknown metric: {name}")
        with self._lock:
            return self._values[name].get(target)

    def set_many(self, target: Target, values: Mapping[str, float]) -> None:
        """Set several gauges for target under one lock."""
        for name in values:
            self._spec(name, counter=False)
        with self._lock:
            for name, value in values.items():
                self._values[name][target] = float(value)

    def clear_many(self, target: Target, names: Iterable[str]) -> None:
        """Clear several gauges for target under one lock."""
        names = list(names)
        for name in names:
            self._spec(name, counter=False)
        with self._lock:
            for name in names:
                self._values[name].pop(target, None)

    def _families(self, snapshot: Mapping[str, Mapping[Target, float]]) -> Iterator[Metric]:
        for name, spec in self._specs.items():
            full_name = f"{self._prefix}_{name}" if self._prefix else name
            family_cls = CounterMetricFamily if spec.is_counter else GaugeMetricFamily
            family = family_cls(full_name, spec.documentation, labels=LABEL_NAMES)
            for target, value in snapshot.get(name, {}).items():
                labels = target.labels()
                family.add_metric([labels[label] for label in LABEL_NAMES], value)
            yield family

    def describe(self) -> Iterable[Metric]:
        """Describe exported families without reading values."""
        return list(self._families({}))

    def collect(self) -> Iterable[Metric]:
        """Render a consistent snapshot of all values."""
        with self._lock:
            snapshot = {name: dict(series) for name, series in self._values.items()}
        return list(self._families(snapshot))
