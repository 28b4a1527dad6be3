"""Tests for SIGTERM signal handling."""

import asyncio
import os
import signal

import pytest

from iperf_exporter.adapters.driving.signals import make_stop_event

__all__ = []


@pytest.mark.asyncio
async def test_stop_event_is_set_after_sigterm() -> None:
    """Stop event should be set after SIGTERM is sent."""
    stop = make_stop_event()

    # Initial state
    assert stop.is_set() is False

    # Send SIGTERM to current process
    os.kill(os.getpid(), signal.SIGTERM)

    # Wait for the event loop to process the signal
    await asyncio.wait_for(stop.wait(), timeout=1)

    assert stop.is_set() is True

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.remove_signal_handler(sig)
