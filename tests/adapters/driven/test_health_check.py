"""Tests for health check validator."""
from unittest.mock import Mock, patch

from iperf_exporter.adapters.driven.config.health_check import main

__all__ = []


def test_health_check_success() -> None:
    """Health check should return 0 when configuration loads and iperf3 is found."""
    with (
        patch("iperf_exporter.adapters.driven.config.health_check.load_settings") as mock_load,
        patch("iperf_exporter.adapters.driven.config.health_check.shutil.which") as mock_which,
    ):
        mock_load.return_value = Mock(iperf3_binary="iperf3")
        mock_which.return_value = "/usr/bin/iperf3"
        result = main()

    assert result == 0
    mock_which.assert_called_once_with("iperf3")


def test_health_check_failure_on_config_error() -> None:
    """Health check should return 1 when configuration fails to load."""
    with patch("iperf_exporter.adapters.driven.config.health_check.load_settings") as mock_load:
        mock_load.side_effect = RuntimeError("Invalid configuration")
        result = main()

    assert result == 1


def test_health_check_failure_when_iperf3_missing() -> None:
    """Health check should return 1 when the iperf3 binary is not on PATH."""
    with (
        patch("iperf_exporter.adapters.driven.config.health_check.load_settings") as mock_load,
        patch(
            "iperf_exporter.adapters.driven.config.health_check.shutil.which",
            return_value=None,
        ),
    ):
        mock_load.return_value = Mock(iperf3_binary="iperf3")
        result = main()

    assert result == 1
