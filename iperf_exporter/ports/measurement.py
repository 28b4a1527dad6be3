"""Measurement port definition (interface and DTOs)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

__all__ = [
    "FailureKind",
    "MeasurementFailure",
    "MeasurementPort",
    "MeasurementReport",
    "MeasurementResult",
    "Target",
]


@dataclass(slots=True, frozen=True)
class Target:
    """Remote iperf3 server being measured.

    Attributes:
        host: Server address (IP or hostname).
        port: Server TCP port.
    """

    host: str
    port: int

    def labels(self) -> dict[str, str]:
        """Return the exposition labels identifying this target."""
        return {"server": self.host, "port": str(self.port)}

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(slots=True, frozen=True)
class MeasurementReport:
    """Immutable result of one successful measurement.

    Attributes:
        sent_bits_per_second: Sender-side throughput.
        sent_retransmits: Sender-side TCP retransmits.
        received_bits_per_second: Receiver-side throughput.
        received_retransmits: Receiver-side TCP retransmits.
    """

    sent_bits_per_second: float
    sent_retransmits: float
    received_bits_per_second: float
    received_retransmits: float

    def as_metrics(self) -> dict[str, float]:
        """Map gauge names to the values of this report."""
        return {
            "sent_bits_per_second": self.sent_bits_per_second,
            "sent_retransmits": self.sent_retransmits,
            "received_bits_per_second": self.received_bits_per_second,
            "received_retransmits": self.received_retransmits,
        }


class FailureKind(str, Enum):
    """Why a measurement attempt failed."""

    LAUNCH = "launch"
    EXIT_STATUS = "exit_status"
    PARSE = "parse"
    TOOL_ERROR = "tool_error"


@dataclass(slots=True, frozen=True)
class MeasurementFailure:
    """Classified failure of one measurement attempt.

    Attributes:
        kind: Failure category.
        message: Human readable reason (the tool's own message for TOOL_ERROR).
        exit_code: Process exit status, set for EXIT_STATUS only.
    """

    kind: FailureKind
    message: str
    exit_code: int | None = None

    def __str__(self) -> str:
        return self.message


MeasurementResult = MeasurementReport | MeasurementFailure


class MeasurementPort(Protocol):
    """Interface for running one bandwidth measurement.

    One call is exactly one attempt; implementations never retry.
    """

    async def measure(self, target: Target, /) -> MeasurementResult:
        """Measure throughput against target.

        Args:
            target: Server to measure.

        Returns:
            A report on success, a classified failure otherwise.
        """
        ...
