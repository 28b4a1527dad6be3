"""Application entrypoint."""

import asyncio
import contextlib
import logging

from prometheus_client import CollectorRegistry

from iperf_exporter.adapters.driven.config.settings import load_settings
from iperf_exporter.adapters.driven.iperf3.invoker import Iperf3Invoker
from iperf_exporter.adapters.driven.logging.logging_config import configure_logs
from iperf_exporter.adapters.driven.metrics.metric_store import MetricStore
from iperf_exporter.adapters.driving.exposition import start_exposition
from iperf_exporter.adapters.driving.signals import make_stop_event
from iperf_exporter.core.sampler import Sampler
from iperf_exporter.ports.measurement import Target
from iperf_exporter.ports.settings import SettingsPort

__all__ = ["main", "run"]

logger = logging.getLogger(__name__)


async def main() -> int:
    """Start the iperf3 exporter.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration (fatal on error).
    3. Start the metrics endpoint (fatal if it cannot listen).
    4. Run the sampler in the background.
    5. Gracefully shutdown on SIGTERM/SIGINT.

    Returns:
        Process exit code.
    """
    configure_logs()
    logger.info("Starting iperf3 exporter...")

    try:
        config = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.critical(
            "Configuration error: %s\n"
            "Hint: check IPERF3_SERVER, IPERF3_PORT, SAMPLE_INTERVAL and EXPORTER_ADDR.",
            exc,
        )
        return 1

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        target=Target(host=config.server, port=config.port),
        interval_sec=config.interval_sec,
        failure_backoff_sec=config.failure_backoff_sec,
        connect_timeout_ms=config.connect_timeout_ms,
        iperf3_binary=config.iperf3_binary,
        listen_host=config.listen_host,
        listen_port=config.listen_port,
    )

    store = MetricStore()
    registry = CollectorRegistry()
    registry.register(store)

    invoker = Iperf3Invoker(
        binary=settings_port.iperf3_binary,
        connect_timeout_ms=settings_port.connect_timeout_ms,
    )
    sampler = Sampler(settings=settings_port, measure_fn=invoker.measure, store=store)

    try:
        runner = await start_exposition(
            registry, settings_port.listen_host, settings_port.listen_port
        )
    except OSError as exc:
        logger.critical(f"Cannot start metrics listener: {exc}")
        return 1

    stop = make_stop_event()
    sampler_task = asyncio.create_task(sampler.run(stop_fn=stop.is_set), name="sampler")
    stop_task = asyncio.create_task(stop.wait(), name="stop")
    exit_code = 0

    try:
        await asyncio.wait({sampler_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if sampler_task.done() and not stop.is_set():
            logger.error("Sampler stopped unexpectedly", exc_info=sampler_task.exception())
            exit_code = 1
    finally:
        for task in (sampler_task, stop_task):
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(sampler_task, stop_task, return_exceptions=True)
        await runner.cleanup()

    logger.info("iperf3 exporter stopped.")
    return exit_code


def run() -> None:
    """Console script entrypoint."""
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Shutdown requested by user (Ctrl+C).")


if __name__ == "__main__":
    run()
