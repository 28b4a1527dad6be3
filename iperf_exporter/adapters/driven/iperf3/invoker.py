"""iperf3 measurement adapter using the iperf3 command line client."""

import asyncio
import contextlib
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from iperf_exporter.ports.measurement import (
    FailureKind,
    MeasurementFailure,
    MeasurementPort,
    MeasurementReport,
    MeasurementResult,
    Target,
)

__all__ = ["Iperf3Invoker", "parse_iperf3_report"]

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_MS = 1000


class _Summary(BaseModel):
    """One of the `end.sum_*` records of an iperf3 JSON report."""

    bits_per_second: float = Field(..., ge=0)
    # iperf3 only reports retransmits on the sending side
    retransmits: float = Field(default=0, ge=0)


class _End(BaseModel):
    sum_sent: _Summary | None = None
    sum_received: _Summary | None = None


class _Iperf3Result(BaseModel):
    """Top level of the iperf3 `--json` output.

    `end` is left undecoded so an error message is read even when iperf3
    aborted before writing complete summaries.
    """

    error: str | None = None
    end: Any = None


def _parse_failure(e: ValidationError, prefix: tuple[str, ...] = ()) -> MeasurementFailure:
    first = e.errors()[0]
    location = ".".join(str(part) for part in (*prefix, *first["loc"])) or "<root>"
    return MeasurementFailure(
        kind=FailureKind.PARSE,
        message=f"malformed iperf3 output at {location}: {first['msg']}",
    )


def parse_iperf3_report(output: bytes | str) -> MeasurementResult:
    """Decode iperf3 `--json` output into a report (pure function).

    Checks, in order: the output is a JSON object, it carries no error
    message, its `end` section decodes and both `end.sum_sent` and
    `end.sum_received` are present. Any other field of the report is
    ignored.

    Args:
        output: Captured standard output of iperf3.

    Returns:
        MeasurementReport on success, MeasurementFailure (PARSE or
        TOOL_ERROR) otherwise.
    """
    try:
        result = _Iperf3Result.model_validate_json(output)
    except ValidationError as e:
        return _parse_failure(e)

    if result.error:
        return MeasurementFailure(kind=FailureKind.TOOL_ERROR, message=result.error)

    try:
        end = _End.model_validate(result.end if result.end is not None else {})
    except ValidationError as e:
        return _parse_failure(e, prefix=("end",))

    sent, received = end.sum_sent, end.sum_received
    if sent is None or received is None:
        missing = "end.sum_sent" if sent is None else "end.sum_received"
        return MeasurementFailure(
            kind=FailureKind.PARSE,
            message=f"malformed iperf3 output: missing {missing}",
        )

    return MeasurementReport(
        sent_bits_per_second=sent.bits_per_second,
        sent_retransmits=sent.retransmits,
        received_bits_per_second=received.bits_per_second,
        received_retransmits=received.retransmits,
    )


class Iperf3Invoker(MeasurementPort):
    """Run one iperf3 client measurement per call.

    The client runs as a subprocess on the event loop so scrapes keep being
    served while it measures. Output is read in full after the process
    exits and then classified; nothing is retried here.
    """

    def __init__(
        self,
        binary: str = "iperf3",
        connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS,
    ) -> None:
        """Initialize the invoker.

        Args:
            binary: iperf3 executable name or path.
            connect_timeout_ms: Connection-establishment timeout passed to iperf3.
        """
        if connect_timeout_ms <= 0:
            raise ValueError("connect_timeout_ms must be positive")

        self.binary = binary
        self.connect_timeout_ms = connect_timeout_ms

    def build_command(self, target: Target) -> list[str]:
        """Build the iperf3 client command line for target."""
        return [
            self.binary,
            "--json",
            "-c",
            target.host,
            "-p",
            str(target.port),
            "--connect-timeout",
            str(self.connect_timeout_ms),
        ]

    async def measure(self, target: Target) -> MeasurementResult:
        """Run iperf3 against target and classify the outcome.

        Failure classification, in order: the process could not be started
        or was killed by a signal (LAUNCH), it exited non-zero (EXIT_STATUS),
        its output is not a valid report (PARSE), the report carries an
        error message (TOOL_ERROR).

        Args:
            target: iperf3 server to measure.

        Returns:
            MeasurementReport or MeasurementFailure.
        """
        cmd = self.build_command(target)
        logger.debug("Executing iperf3: %s", " ".join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return MeasurementFailure(
                kind=FailureKind.LAUNCH,
                message=f"cannot start {self.binary}: {e}",
            )

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            # reap the child so its transport is closed before the loop stops
            with contextlib.suppress(OSError):
                await proc.wait()
            raise

        returncode = proc.returncode
        logger.debug("iperf3 completed: target=%s, returncode=%s", target, returncode)

        if returncode is None or returncode < 0:
            return MeasurementFailure(
                kind=FailureKind.LAUNCH,
                message=f"{self.binary} crashed (returncode={returncode})",
            )

        if returncode != 0:
            if stderr:
                logger.debug("iperf3 stderr: %s", stderr.decode(errors="replace").strip())
            return MeasurementFailure(
                kind=FailureKind.EXIT_STATUS,
                message=f"exit code: {returncode}",
                exit_code=returncode,
            )

        return parse_iperf3_report(stdout)
