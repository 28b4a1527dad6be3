"""Console logging for the exporter process."""

import logging

__all__ = ["LOG_FORMAT", "configure_logs"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs(app_level: int = logging.DEBUG) -> None:
    """Send all log records to stderr in one line per record.

    Measurement failures are logged by the sampler at ERROR and fatal
    startup problems by main at CRITICAL; per-run iperf3 details are
    DEBUG. aiohttp and asyncio chatter is kept at WARNING so scrapes do
    not flood the console.

    Safe to call more than once: the exporter's handler is installed once.

    Args:
        app_level: Level for the `iperf_exporter` logger tree.
    """
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    if not any(getattr(h, "_iperf_exporter", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._iperf_exporter = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for name in ("aiohttp", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("iperf_exporter").setLevel(app_level)
