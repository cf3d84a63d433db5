"""Tests for host side effects."""

import socket
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import psutil
import pytest

from browser_test_harness.host import (
    configure_firewall_rule,
    kill_stale_processes,
    port_in_use,
)


def process_mock(name: str, pid: int) -> Mock:
    """Create mock psutil process."""
    process = Mock(spec=psutil.Process)
    process.info = {"name": name}
    process.pid = pid
    return process


def connection_mock(port: int, status: str = psutil.CONN_LISTEN) -> Mock:
    """Create mock psutil inet connection."""
    return Mock(laddr=Mock(port=port), status=status)


class TestKillStaleProcesses:
    """Tests for kill_stale_processes."""

    async def test_kills_matching_processes_only(self) -> None:
        """Kills processes with the service name, with or without .exe."""
        stale = process_mock("chromedriver", 10)
        stale_exe = process_mock("ChromeDriver.exe", 11)
        other = process_mock("python", 12)

        with patch(
            "browser_test_harness.host.psutil.process_iter",
            return_value=[stale, stale_exe, other],
        ):
            result = await kill_stale_processes("chromedriver")

        assert result.attempted is True
        assert result.succeeded is True
        stale.kill.assert_called_once_with()
        stale_exe.kill.assert_called_once_with()
        other.kill.assert_not_called()

    async def test_port_filter_keeps_services_on_other_ports(self) -> None:
        """Only the process listening on the requested port is killed."""
        own = process_mock("chromedriver", 10)
        own.net_connections.return_value = [connection_mock(9601)]
        other_worker = process_mock("chromedriver", 11)
        other_worker.net_connections.return_value = [connection_mock(9602)]
        unreadable = process_mock("chromedriver", 12)
        unreadable.net_connections.side_effect = psutil.AccessDenied(12)

        with patch(
            "browser_test_harness.host.psutil.process_iter",
            return_value=[own, other_worker, unreadable],
        ):
            result = await kill_stale_processes("chromedriver", port=9601)

        assert result.succeeded is True
        own.kill.assert_called_once_with()
        other_worker.kill.assert_not_called()
        unreadable.kill.assert_not_called()

    async def test_port_filter_ignores_outgoing_connections(self) -> None:
        """A connection to the port that is not a listener does not match."""
        client = process_mock("chromedriver", 10)
        client.net_connections.return_value = [
            connection_mock(9601, status=psutil.CONN_ESTABLISHED)
        ]

        with patch(
            "browser_test_harness.host.psutil.process_iter", return_value=[client]
        ):
            await kill_stale_processes("chromedriver", port=9601)

        client.kill.assert_not_called()

    async def test_ignores_processes_that_already_exited(self) -> None:
        """A process gone before it is killed is not a failure."""
        gone = process_mock("chromedriver", 10)
        gone.kill.side_effect = psutil.NoSuchProcess(10)

        with patch(
            "browser_test_harness.host.psutil.process_iter", return_value=[gone]
        ):
            result = await kill_stale_processes("chromedriver")

        assert result.succeeded is True

    async def test_reports_access_denied(self) -> None:
        """Reports a process that cannot be killed without raising."""
        protected = process_mock("IEDriverServer.exe", 20)
        protected.kill.side_effect = psutil.AccessDenied(20)

        with patch(
            "browser_test_harness.host.psutil.process_iter", return_value=[protected]
        ):
            result = await kill_stale_processes("IEDriverServer")

        assert result.attempted is True
        assert result.succeeded is False
        assert result.detail is not None
        assert "pid 20" in result.detail


class TestConfigureFirewallRule:
    """Tests for configure_firewall_rule."""

    @pytest.mark.skipif(sys.platform == "win32", reason="not managed off Windows")
    async def test_not_attempted_off_windows(self, tmp_path: Path) -> None:
        """Firewall rules are only managed on Windows."""
        result = await configure_firewall_rule("rule", tmp_path / "msedgedriver")

        assert result.attempted is False
        assert result.succeeded is False

    async def test_replaces_rule_on_windows(self, tmp_path: Path) -> None:
        """Deletes then adds the rule for the service binary."""
        netsh = AsyncMock(side_effect=[(0, "deleted"), (0, "Ok.")])

        with (
            patch("browser_test_harness.host.sys.platform", "win32"),
            patch("browser_test_harness.host._netsh", netsh),
        ):
            result = await configure_firewall_rule(
                "Microsoft Edge WebDriver server", tmp_path / "msedgedriver.exe"
            )

        assert result.succeeded is True
        assert netsh.await_args_list[0].args[:2] == ("delete", "rule")
        add_args = netsh.await_args_list[1].args
        assert add_args[:2] == ("add", "rule")
        assert f"program={tmp_path / 'msedgedriver.exe'}" in add_args

    async def test_reports_failure_without_raising(self, tmp_path: Path) -> None:
        """A non-zero netsh exit is reported, not raised."""
        netsh = AsyncMock(side_effect=[(0, ""), (1, "The requested operation")])

        with (
            patch("browser_test_harness.host.sys.platform", "win32"),
            patch("browser_test_harness.host._netsh", netsh),
        ):
            result = await configure_firewall_rule("rule", tmp_path / "x.exe")

        assert result.attempted is True
        assert result.succeeded is False
        assert result.detail == "The requested operation"

    async def test_reports_missing_netsh(self, tmp_path: Path) -> None:
        """A missing netsh binary is reported, not raised."""
        netsh = AsyncMock(side_effect=FileNotFoundError("netsh"))

        with (
            patch("browser_test_harness.host.sys.platform", "win32"),
            patch("browser_test_harness.host._netsh", netsh),
        ):
            result = await configure_firewall_rule("rule", tmp_path / "x.exe")

        assert result.succeeded is False


def test_port_in_use() -> None:
    """Detects a listening socket and a free port."""
    with socket.socket() as server:
        server.bind(("localhost", 0))
        server.listen()
        port = server.getsockname()[1]

        assert port_in_use("localhost", port) is True

    assert port_in_use("localhost", port) is False
