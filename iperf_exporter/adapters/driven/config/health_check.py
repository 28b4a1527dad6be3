"""Healthcheck validator for container orchestration."""

import logging
import shutil

from iperf_exporter.adapters.driven.config.settings import load_settings
from iperf_exporter.adapters.driven.logging.logging_config import configure_logs

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Run health check for container orchestration.

    Validates:
    - Configuration can be loaded from the environment.
    - The configured iperf3 executable can be found.

    Returns:
        0 if healthy, 1 if unhealthy.
    """
    configure_logs()

    try:
        settings = load_settings()
    except Exception as exc:
        logger.error(f"Exporter healthcheck FAILED: {exc}")
        return 1

    if shutil.which(settings.iperf3_binary) is None:
        logger.error(f"Exporter healthcheck FAILED: {settings.iperf3_binary} not found in PATH")
        return 1

    logger.info("Exporter healthcheck OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
