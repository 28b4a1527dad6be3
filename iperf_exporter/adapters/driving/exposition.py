"""HTTP endpoint serving the metric store in Prometheus text format."""

import logging

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

__all__ = ["METRICS_PATH", "make_app", "start_exposition"]

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
_REGISTRY_KEY = web.AppKey("registry", CollectorRegistry)

_LANDING_PAGE = f"""<html>
<head><title>iperf3 exporter</title></head>
<body>
<h1>iperf3 exporter</h1>
<p><a href="{METRICS_PATH}">Metrics</a></p>
</body>
</html>
"""


async def _metrics(request: web.Request) -> web.Response:
    """Serialize current metric values for one scrape."""
    payload = generate_latest(request.app[_REGISTRY_KEY])
    return web.Response(body=payload, headers={"Content-Type": CONTENT_TYPE_LATEST})


async def _index(request: web.Request) -> web.Response:
    return web.Response(text=_LANDING_PAGE, content_type="text/html")


def make_app(registry: CollectorRegistry) -> web.Application:
    """Build the aiohttp application exposing registry.

    Args:
        registry: Registry rendered on every GET /metrics.

    Returns:
        Configured application.
    """
    app = web.Application()
    app[_REGISTRY_KEY] = registry
    app.router.add_get("/", _index)
    app.router.add_get(METRICS_PATH, _metrics)
    return app


async def start_exposition(registry: CollectorRegistry, host: str, port: int) -> web.AppRunner:
    """Start serving registry on host:port.

    Args:
        registry: Registry to expose.
        host: Bind address; empty string binds all interfaces.
        port: Bind port.

    Returns:
        Runner to clean up on shutdown.

    Raises:
        OSError: If the listener cannot be started.
    """
    runner = web.AppRunner(make_app(registry), access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host or None, port)
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise

    logger.info(f"Serving metrics on http://{host or '0.0.0.0'}:{port}{METRICS_PATH}")
    return runner
