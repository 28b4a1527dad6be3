"""Settings port definition (DTO)."""

from dataclasses import dataclass

from iperf_exporter.ports.measurement import Target

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for the sampler and the exposition endpoint.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        target: iperf3 server to measure.
        interval_sec: Seconds to wait after a successful sample.
        failure_backoff_sec: Seconds to wait after a failed sample.
        connect_timeout_ms: iperf3 connection-establishment timeout.
        iperf3_binary: Executable name or path of iperf3.
        listen_host: Address the metrics endpoint binds to ("" = all).
        listen_port: Port the metrics endpoint binds to.
    """

    target: Target
    interval_sec: float
    failure_backoff_sec: float = 10.0
    connect_timeout_ms: int = 1000
    iperf3_binary: str = "iperf3"
    listen_host: str = ""
    listen_port: int = 9103
