"""Configuration loading from environment variables."""

import logging
import os
import re

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

__all__ = ["Settings", "load_settings", "parse_duration", "parse_listen_address"]

load_dotenv()

logger = logging.getLogger(__name__)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration string such as "5m", "1h30m" or "1.5s" into seconds.

    A duration is an optionally signed sequence of decimal numbers, each
    with an optional fraction and a required unit suffix (ns, us, ms, s,
    m, h). The bare string "0" is also accepted.

    Args:
        text: Duration string.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    raw = text.strip()
    body = raw.lstrip("+-")
    sign = -1.0 if raw.startswith("-") else 1.0
    if len(raw) - len(body) > 1:
        raise ValueError(f"invalid duration: {text!r}")
    if body == "0":
        return 0.0
    if not body:
        raise ValueError(f"invalid duration: {text!r}")

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _DURATION_PART.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def parse_listen_address(addr: str) -> tuple[str, int]:
    """Split a listen address into host and port.

    Accepts "host:port", ":port" (all interfaces) and "[v6addr]:port".

    Raises:
        ValueError: If the address has no valid port.
    """
    host, sep, port_raw = addr.strip().rpartition(":")
    if not sep:
        raise ValueError(f"listen address must be host:port (got: {addr!r})")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_raw)
    except ValueError as e:
        raise ValueError(f"invalid port in listen address {addr!r}") from e
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in listen address {addr!r}")
    return host, port


class Settings(BaseModel):
    """Runtime configuration for the exporter.

    Attributes:
        server: iperf3 server address.
        port: iperf3 server port.
        interval_sec: Seconds between successful samples (must be positive).
        listen_host: Exposition bind address ("" = all interfaces).
        listen_port: Exposition bind port.
        connect_timeout_ms: iperf3 connect timeout in milliseconds.
        failure_backoff_sec: Seconds to wait after a failed sample.
        iperf3_binary: iperf3 executable name or path.
    """

    server: str = Field(default="127.0.0.1", min_length=1, description="iperf3 server address.")
    port: int = Field(default=5201, gt=0, lt=65536, description="iperf3 server port.")
    interval_sec: float = Field(default=300.0, gt=0, description="Sampling interval in seconds.")
    listen_host: str = Field(default="", description="Exposition bind address.")
    listen_port: int = Field(default=9103, gt=0, lt=65536, description="Exposition bind port.")
    connect_timeout_ms: int = Field(default=1000, gt=0, description="iperf3 connect timeout.")
    failure_backoff_sec: float = Field(
        default=10.0, gt=0, description="Wait after a failed sample in seconds."
    )
    iperf3_binary: str = Field(default="iperf3", min_length=1, description="iperf3 executable.")

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Reject server addresses containing whitespace.

        Raises:
            ValueError: If the address contains whitespace.
        """
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError(f"Invalid iperf3 server address: {v!r}")
        return v


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Optional environment variables (defaults in brackets):
    - IPERF3_SERVER: iperf3 server address [127.0.0.1].
    - IPERF3_PORT: iperf3 server port [5201].
    - SAMPLE_INTERVAL: Duration string between samples [5m].
    - EXPORTER_ADDR: Metrics listen address [:9103].
    - IPERF3_CONNECT_TIMEOUT_MS: iperf3 connect timeout [1000].
    - FAILURE_BACKOFF_SECONDS: Wait after a failed sample [10].
    - IPERF3_BINARY: iperf3 executable [iperf3].

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If a value cannot be parsed.
        ValueError: If configuration is invalid.
    """
    interval_raw = os.getenv("SAMPLE_INTERVAL", "5m")
    try:
        interval_sec = parse_duration(interval_raw)
    except ValueError as e:
        raise RuntimeError(f"SAMPLE_INTERVAL is not a valid duration (got: {interval_raw})") from e
    if interval_sec <= 0:
        raise RuntimeError(f"SAMPLE_INTERVAL must be positive (got: {interval_raw})")

    addr_raw = os.getenv("EXPORTER_ADDR", ":9103")
    try:
        listen_host, listen_port = parse_listen_address(addr_raw)
    except ValueError as e:
        raise RuntimeError(f"EXPORTER_ADDR is invalid: {e}") from e

    port_raw = os.getenv("IPERF3_PORT", "5201")
    timeout_raw = os.getenv("IPERF3_CONNECT_TIMEOUT_MS", "1000")
    backoff_raw = os.getenv("FAILURE_BACKOFF_SECONDS", "10")
    try:
        port = int(port_raw)
        connect_timeout_ms = int(timeout_raw)
        failure_backoff_sec = float(backoff_raw)
    except ValueError as e:
        raise RuntimeError(
            "IPERF3_PORT and IPERF3_CONNECT_TIMEOUT_MS must be integers, "
            f"FAILURE_BACKOFF_SECONDS a number (got: {port_raw}, {timeout_raw}, {backoff_raw})"
        ) from e

    settings = Settings(
        server=os.getenv("IPERF3_SERVER", "127.0.0.1"),
        port=port,
        interval_sec=interval_sec,
        listen_host=listen_host,
        listen_port=listen_port,
        connect_timeout_ms=connect_timeout_ms,
        failure_backoff_sec=failure_backoff_sec,
        iperf3_binary=os.getenv("IPERF3_BINARY", "iperf3"),
    )

    logger.info(
        f"Exporter configured: target={settings.server}:{settings.port}, "
        f"interval={settings.interval_sec}s, "
        f"backoff={settings.failure_backoff_sec}s, "
        f"listen={settings.listen_host or '*'}:{settings.listen_port}"
    )

    return settings
