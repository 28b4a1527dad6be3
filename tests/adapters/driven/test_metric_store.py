"""Tests for the Prometheus-backed metric store."""

import threading

import pytest
from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.parser import text_string_to_metric_families

from iperf_exporter.adapters.driven.metrics.metric_store import MetricStore
from iperf_exporter.ports.measurement import Target
from iperf_exporter.ports.metrics import (
    ERRORS,
    GAUGE_NAMES,
    RECEIVED_BITS_PER_SECOND,
    SENT_BITS_PER_SECOND,
)

__all__ = []

TARGET = Target(host="10.0.0.5", port=5201)
OTHER = Target(host="10.0.0.6", port=5202)

VALUES = {
    "sent_bits_per_second": 1_000_000,
    "sent_retransmits": 2,
    "received_bits_per_second": 950_000,
    "received_retransmits": 0,
}


@pytest.fixture
def store_and_registry() -> tuple[MetricStore, CollectorRegistry]:
    store = MetricStore()
    registry = CollectorRegistry()
    registry.register(store)
    return store, registry


def test_values_start_absent() -> None:
    """Nothing should be present before the first write."""
    store = MetricStore()

    assert all(store.get(name, TARGET) is None for name in (*GAUGE_NAMES, ERRORS))


def test_set_is_last_write_wins() -> None:
    store = MetricStore()

    store.set(SENT_BITS_PER_SECOND, TARGET, 10)
    store.set(SENT_BITS_PER_SECOND, TARGET, 20)

    assert store.get(SENT_BITS_PER_SECOND, TARGET) == 20


def test_clear_returns_gauge_to_absent() -> None:
    store = MetricStore()
    store.set(SENT_BITS_PER_SECOND, TARGET, 10)

    store.clear(SENT_BITS_PER_SECOND, TARGET)
    store.clear(SENT_BITS_PER_SECOND, TARGET)

    assert store.get(SENT_BITS_PER_SECOND, TARGET) is None


def test_targets_are_independent() -> None:
    store = MetricStore()
    store.set_many(TARGET, VALUES)
    store.set_many(OTHER, VALUES)

    store.clear_many(TARGET, GAUGE_NAMES)
    store.increment(ERRORS, TARGET)

    assert store.get(RECEIVED_BITS_PER_SECOND, TARGET) is None
    assert store.get(RECEIVED_BITS_PER_SECOND, OTHER) == 950_000
    assert store.get(ERRORS, OTHER) is None


def test_increment_counts_up() -> None:
    store = MetricStore()

    for _ in range(3):
        store.increment(ERRORS, TARGET)

    assert store.get(ERRORS, TARGET) == 3


def test_rejects_unknown_metric() -> None:
    store = MetricStore()

    with pytest.raises(KeyError, match="Unknown metric"):
        store.set("latency", TARGET, 1)
    with pytest.raises(KeyError):
        store.get("latency", TARGET)


def test_rejects_wrong_metric_kind() -> None:
    """Gauges cannot be incremented and the counter cannot be set or cleared."""
    store = MetricStore()

    with pytest.raises(ValueError, match="gauge"):
        store.increment(SENT_BITS_PER_SECOND, TARGET)
    with pytest.raises(ValueError, match="counter"):
        store.set(ERRORS, TARGET, 0)
    with pytest.raises(ValueError, match="counter"):
        store.clear_many(TARGET, [ERRORS])


def test_set_many_validates_before_writing() -> None:
    """A rejected group should leave no partial writes behind."""
    store = MetricStore()

    with pytest.raises(KeyError):
        store.set_many(TARGET, {SENT_BITS_PER_SECOND: 1, "bogus": 2})

    assert store.get(SENT_BITS_PER_SECOND, TARGET) is None


def scrape(registry: CollectorRegistry) -> dict[tuple[str, str, str], float]:
    """Render registry and index samples by (name, server, port)."""
    text = generate_latest(registry).decode()
    return {
        (sample.name, sample.labels["server"], sample.labels["port"]): sample.value
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    }


def test_exposition_contains_labelled_values(store_and_registry) -> None:
    store, registry = store_and_registry
    store.set_many(TARGET, VALUES)
    store.increment(ERRORS, TARGET)

    samples = scrape(registry)

    assert samples == {
        ("network_iperf3_sent_bits_per_second", "10.0.0.5", "5201"): 1_000_000,
        ("network_iperf3_sent_retransmits", "10.0.0.5", "5201"): 2,
        ("network_iperf3_received_bits_per_second", "10.0.0.5", "5201"): 950_000,
        ("network_iperf3_received_retransmits", "10.0.0.5", "5201"): 0,
        ("network_iperf3_errors_total", "10.0.0.5", "5201"): 1,
    }
    types = {
        sample.name: family.type
        for family in text_string_to_metric_families(generate_latest(registry).decode())
        for sample in family.samples
    }
    assert types["network_iperf3_errors_total"] == "counter"
    assert types["network_iperf3_received_bits_per_second"] == "gauge"


def test_cleared_gauges_disappear_from_exposition(store_and_registry) -> None:
    """Cleared gauges should be omitted while the error counter stays visible."""
    store, registry = store_and_registry
    store.set_many(TARGET, VALUES)
    store.increment(ERRORS, TARGET)
    store.clear_many(TARGET, GAUGE_NAMES)

    samples = scrape(registry)

    assert samples == {("network_iperf3_errors_total", "10.0.0.5", "5201"): 1}


def test_repeated_reads_are_identical(store_and_registry) -> None:
    store, registry = store_and_registry
    store.set_many(TARGET, VALUES)

    assert generate_latest(registry) == generate_latest(registry)
    assert store.get(SENT_BITS_PER_SECOND, TARGET) == store.get(SENT_BITS_PER_SECOND, TARGET)


def test_namespace_and_subsystem_are_configurable() -> None:
    store = MetricStore(namespace="lab", subsystem="")
    registry = CollectorRegistry()
    registry.register(store)
    store.set(SENT_BITS_PER_SECOND, TARGET, 5)

    assert scrape(registry) == {("lab_sent_bits_per_second", "10.0.0.5", "5201"): 5}


def test_group_writes_are_never_observed_half_applied() -> None:
    """A scrape racing set_many/clear_many sees all four gauges or none."""
    store = MetricStore()
    stop = threading.Event()

    def flap() -> None:
        while not stop.is_set():
            store.set_many(TARGET, VALUES)
            store.clear_many(TARGET, GAUGE_NAMES)

    writer = threading.Thread(target=flap, daemon=True)
    writer.start()
    try:
        counts = set()
        for _ in range(2000):
            present = sum(
                len(family.samples) for family in store.collect() if family.type == "gauge"
            )
            counts.add(present)
    finally:
        stop.set()
        writer.join(timeout=5)

    assert counts <= {0, len(GAUGE_NAMES)}
