"""Unit tests for PortReaper."""

from __future__ import annotations

import socket
import subprocess
import sys
from unittest.mock import MagicMock, patch

import psutil
import pytest

from ilp_harness.environment import EnvironmentTargets, PortGroup, PortReaper, find_listeners
from ilp_harness.environment.state import REDIS_SHUTDOWN_COMMAND

FIND = "ilp_harness.environment.ports.find_listeners"


@pytest.fixture
def targets():
    return EnvironmentTargets(
        port_groups=(
            PortGroup("redis", (6379,), REDIS_SHUTDOWN_COMMAND),
            PortGroup("node", (7770,)),
        )
    )


class TestFindListeners:
    """Tests for find_listeners."""

    def test_filters_to_wanted_ports(self):
        """Test only tracked ports are reported, with unique pids."""
        sockets = [(6379, 10), (6379, 10), (80, 5), (7770, None)]
        with patch("ilp_harness.environment.ports._listening_sockets", return_value=sockets):
            assert find_listeners([6379, 7770, 8545]) == {6379: [10], 7770: []}

    def test_no_ports_skips_scan(self):
        """Test an empty port list never touches the socket table."""
        with patch("ilp_harness.environment.ports._listening_sockets") as scan:
            assert find_listeners([]) == {}
        scan.assert_not_called()


class TestPortReaper:
    """Tests for PortReaper.reap."""

    def test_nothing_bound_is_clean(self, targets):
        """Test reaping free ports does nothing."""
        with patch(FIND, return_value={}), patch("subprocess.run") as mock_run:
            report = PortReaper(targets).reap()
        assert report.clean is True
        assert report.removed == []
        mock_run.assert_not_called()

    def test_graceful_shutdown_frees_port(self, targets):
        """Test redis is asked to shut down before anything is terminated."""
        with (
            patch(FIND, side_effect=[{6379: [100]}, {}, {}]),
            patch("subprocess.run") as mock_run,
            patch("psutil.Process") as mock_process,
        ):
            mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            report = PortReaper(targets).reap()

        assert mock_run.call_args[0][0] == ["redis-cli", "-p", "6379", "shutdown"]
        mock_process.assert_not_called()
        assert report.removed == ["port 6379"]
        assert report.clean is True

    def test_terminates_owner_without_shutdown_command(self, targets):
        """Test plain services get SIGTERM."""
        proc = MagicMock(pid=200)
        with (
            patch(FIND, side_effect=[{7770: [200]}, {7770: [200]}, {}]),
            patch("subprocess.run") as mock_run,
            patch("psutil.Process", return_value=proc),
            patch("psutil.wait_procs", return_value=([proc], [])),
        ):
            report = PortReaper(targets).reap()

        mock_run.assert_not_called()
        proc.terminate.assert_called_once()
        proc.kill.assert_not_called()
        assert report.removed == ["port 7770"]

    def test_escalates_to_kill(self, targets):
        """Test owners surviving the grace period are killed."""
        proc = MagicMock(pid=200)
        with (
            patch(FIND, side_effect=[{7770: [200]}, {7770: [200]}, {}]),
            patch("psutil.Process", return_value=proc),
            patch("psutil.wait_procs", side_effect=[([], [proc]), ([proc], [])]),
        ):
            report = PortReaper(targets, grace_seconds=0.1).reap()

        proc.terminate.assert_called_once()
        proc.kill.assert_called_once()
        assert report.clean is True

    def test_failed_shutdown_falls_back_to_terminate(self, targets):
        """Test a missing redis-cli does not stop the port from being freed."""
        proc = MagicMock(pid=100)
        with (
            patch(FIND, side_effect=[{6379: [100]}, {6379: [100]}, {}]),
            patch("subprocess.run", side_effect=FileNotFoundError),
            patch("psutil.Process", return_value=proc),
            patch("psutil.wait_procs", return_value=([proc], [])),
        ):
            report = PortReaper(targets).reap()

        proc.terminate.assert_called_once()
        assert report.removed == ["port 6379"]

    def test_timed_out_shutdown_falls_back_to_terminate(self, targets):
        """Test a hanging shutdown command is not fatal."""
        proc = MagicMock(pid=100)
        with (
            patch(FIND, side_effect=[{6379: [100]}, {6379: [100]}, {}]),
            patch("subprocess.run", side_effect=subprocess.TimeoutExpired("redis-cli", 10)),
            patch("psutil.Process", return_value=proc),
            patch("psutil.wait_procs", return_value=([proc], [])),
        ):
            report = PortReaper(targets).reap()

        assert report.clean is True

    def test_permission_denied_is_a_warning(self, targets):
        """Test a foreign-owned port is reported, not raised."""
        with (
            patch(FIND, side_effect=[{7770: [300]}, {7770: [300]}, {7770: [300]}]),
            patch("psutil.Process", side_effect=psutil.AccessDenied(pid=300)),
            patch("psutil.wait_procs", return_value=([], [])),
        ):
            report = PortReaper(targets).reap()

        assert report.clean is False
        assert len(report.warnings) == 1
        assert report.warnings[0].resource == "port 7770"
        assert "permission denied" in report.warnings[0].message
        assert report.removed == []

    def test_invisible_owner_is_a_warning(self, targets):
        """Test a port whose owner cannot be seen is reported once."""
        with patch(FIND, side_effect=[{7770: []}, {7770: []}, {7770: []}]):
            report = PortReaper(targets).reap()

        assert len(report.warnings) == 1
        assert "not visible" in report.warnings[0].message

    def test_vanished_process_is_ignored(self, targets):
        """Test an owner exiting on its own between scans is fine."""
        with (
            patch(FIND, side_effect=[{7770: [200]}, {7770: [200]}, {}]),
            patch("psutil.Process", side_effect=psutil.NoSuchProcess(pid=200)),
            patch("psutil.wait_procs", return_value=([], [])),
        ):
            report = PortReaper(targets).reap()

        assert report.clean is True
        assert report.removed == ["port 7770"]


@pytest.mark.integration
@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs /proc socket table")
class TestPortReaperLive:
    """Reap a real listener."""

    def test_frees_port_held_by_child(self):
        """Test a stray listener is terminated and its port released."""
        with socket.socket() as probe:
            probe.bind(("127.0.0.1", 0))
            port = probe.getsockname()[1]

        code = (
            "import socket, time\n"
            "s = socket.socket()\n"
            "s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)\n"
            f"s.bind(('127.0.0.1', {port}))\n"
            "s.listen()\n"
            "print('ready', flush=True)\n"
            "time.sleep(60)\n"
        )
        child = subprocess.Popen([sys.executable, "-c", code], stdout=subprocess.PIPE, text=True)
        try:
            assert child.stdout.readline().strip() == "ready"
            targets = EnvironmentTargets(port_groups=(PortGroup("stray", (port,)),))

            report = PortReaper(targets, grace_seconds=2.0).reap()

            assert report.removed == [f"port {port}"]
            assert child.wait(timeout=5) is not None
            assert find_listeners([port]) == {}
        finally:
            if child.poll() is None:
                child.kill()
                child.wait()
            child.stdout.close()
