"""Unit tests for tracked environment state."""

from __future__ import annotations

from pathlib import Path

from ilp_harness.environment import (
    CleanupReport,
    EnvironmentState,
    EnvironmentTargets,
    PortGroup,
    default_port_groups,
)


class TestPortGroup:
    """Tests for PortGroup."""

    def test_from_range_is_inclusive(self):
        """Test a range covers both ends."""
        group = PortGroup.from_range("redis", 6379, 6385)
        assert group.ports == (6379, 6380, 6381, 6382, 6383, 6384, 6385)

    def test_shutdown_argv_substitutes_port(self):
        """Test the shutdown template gets the port filled in."""
        group = PortGroup("redis", (6380,), ("redis-cli", "-p", "{port}", "shutdown"))
        assert group.shutdown_argv(6380) == ["redis-cli", "-p", "6380", "shutdown"]

    def test_shutdown_argv_none_without_command(self):
        """Test groups without a shutdown command are terminated directly."""
        assert PortGroup("node", (7770,)).shutdown_argv(7770) is None

    def test_from_dict_merges_ports_and_range(self):
        """Test the YAML form accepts explicit ports and a range."""
        group = PortGroup.from_dict(
            "engines",
            {"ports": [8545], "range": [3000, 3002], "shutdown": ["stop", "{port}"]},
        )
        assert group.ports == (8545, 3000, 3001, 3002)
        assert group.shutdown_command == ("stop", "{port}")


class TestEnvironmentTargets:
    """Tests for EnvironmentTargets defaults."""

    def test_default_ports(self):
        """Test the example topology ports are tracked by default."""
        ports = EnvironmentTargets().ports
        for port in [6379, 6385, 8545, 7770, 8770, 9770, 3000, 3003]:
            assert port in ports
        assert 6386 not in ports

    def test_only_redis_is_shutdownable(self):
        """Test redis is the one group with a graceful shutdown."""
        groups = {g.name: g for g in default_port_groups()}
        assert groups["redis"].shutdown_command is not None
        assert groups["node"].shutdown_command is None

    def test_ports_deduplicated(self):
        """Test overlapping groups list each port once."""
        targets = EnvironmentTargets(port_groups=(PortGroup("a", (1, 2)), PortGroup("b", (2, 3))))
        assert targets.ports == [1, 2, 3]

    def test_group_for(self):
        """Test looking up the group owning a port."""
        targets = EnvironmentTargets()
        assert targets.group_for(6381).name == "redis"
        assert targets.group_for(12345) is None


class TestCleanupReport:
    """Tests for CleanupReport."""

    def test_warn_marks_unclean(self):
        """Test a warning makes the report unclean."""
        report = CleanupReport("ports")
        assert report.clean is True
        warning = report.warn("port 6379", "still bound")
        assert report.clean is False
        assert warning.cleaner == "ports"


class TestEnvironmentState:
    """Tests for EnvironmentState."""

    def test_empty_state_is_clean(self):
        """Test an empty observation is the known-clean state."""
        assert EnvironmentState().is_clean is True

    def test_describe_lists_leftovers(self):
        """Test leftovers are described one per line."""
        state = EnvironmentState(
            bound_ports={8770: [42]},
            containers=["abc123"],
            network_present=True,
            files=[Path("dump.rdb")],
        )
        assert state.is_clean is False
        lines = state.describe()
        assert "port 8770 bound by pid(s) 42" in lines
        assert "container abc123" in lines
        assert "test network" in lines
        assert "file dump.rdb" in lines
