"""Sampling loop that measures the target and republishes the latest result."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from iperf_exporter.ports.measurement import (
    FailureKind,
    MeasurementFailure,
    MeasurementReport,
    MeasurementResult,
    Target,
)
from iperf_exporter.ports.metrics import ERRORS, GAUGE_NAMES, MetricStorePort
from iperf_exporter.ports.settings import SettingsPort

__all__ = ["Sampler", "SamplerState"]

logger = logging.getLogger(__name__)

MeasureFn = Callable[[Target], Awaitable[MeasurementResult]]


class SamplerState(str, Enum):
    """Where the sampler is in its Idle -> Sampling -> Success/Failure cycle."""

    IDLE = "idle"
    SAMPLING = "sampling"
    SUCCESS = "success"
    FAILURE = "failure"


class Sampler:
    """Repeatedly measure one target and publish the outcome.

    On success the four throughput/retransmit gauges are overwritten with
    the new report. On failure the target's error counter grows by one and
    the four gauges are cleared together, so scrapes never show numbers
    from before an outage. The wait after a failure is the short backoff,
    the wait after a success is the sampling interval.
    """

    def __init__(
        self,
        settings: SettingsPort,
        measure_fn: MeasureFn,
        store: MetricStorePort,
    ) -> None:
        """Initialize the sampler.

        Args:
            settings: Target, interval and backoff.
            measure_fn: Async function performing one measurement attempt.
            store: Where results are published.
        """
        self.settings = settings
        self.measure_fn = measure_fn
        self.store = store
        self.state = SamplerState.IDLE

    @property
    def target(self) -> Target:
        return self.settings.target

    async def step(self) -> float:
        """Run one measurement attempt and publish its outcome.

        Returns:
            Seconds to wait before the next attempt.
        """
        self.state = SamplerState.SAMPLING
        try:
            result = await self.measure_fn(self.target)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected error while measuring {self.target}: {e}", exc_info=True)
            result = MeasurementFailure(kind=FailureKind.LAUNCH, message=str(e) or repr(e))

        if isinstance(result, MeasurementFailure):
            return self._on_failure(result)
        return self._on_success(result)

    def _on_success(self, report: MeasurementReport) -> float:
        self.store.set_many(self.target, report.as_metrics())
        self.state = SamplerState.SUCCESS
        logger.info(
            f"iperf3 {self.target}: "
            f"sent={report.sent_bits_per_second:.0f} bit/s "
            f"(retransmits={report.sent_retransmits:g}), "
            f"received={report.received_bits_per_second:.0f} bit/s "
            f"(retransmits={report.received_retransmits:g})"
        )
        return self.settings.interval_sec

    def _on_failure(self, failure: MeasurementFailure) -> float:
        logger.error(
            f"iperf3 {self.target} failed ({failure.kind.value}): {failure.message}"
        )
        self.store.increment(ERRORS, self.target)
        self.store.clear_many(self.target, GAUGE_NAMES)
        self.state = SamplerState.FAILURE
        return self.settings.failure_backoff_sec

    async def run(self, stop_fn: Callable[[], bool]) -> None:
        """Run the sampling loop.

        Each cycle measures immediately, publishes the outcome and then
        sleeps for the interval (success) or the backoff (failure).
        Measurement errors never leave this loop.

        Args:
            stop_fn: Callable that returns True when the loop should exit.
        """
        if self.settings.interval_sec <= self.settings.failure_backoff_sec:
            logger.warning(
                f"Sampling interval {self.settings.interval_sec}s is not longer than "
                f"the failure backoff {self.settings.failure_backoff_sec}s"
            )
        logger.info(f"Sampling {self.target} every {self.settings.interval_sec}s")

        while not stop_fn():
            delay = await self.step()
            await asyncio.sleep(delay)
            self.state = SamplerState.IDLE
