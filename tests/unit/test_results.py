"""Unit tests for result aggregation."""

import json
from pathlib import Path

from ilp_harness.scenarios import Job, Mode, ResultAggregator, RunOutcome, Scenario


def _outcome(name, mode, code, artifact=None):
    return RunOutcome(Job(Scenario(Path("/examples") / name), mode), code, artifact)


def _output(console):
    return console.file.getvalue()


class TestResultAggregator:
    """Tests for ResultAggregator."""

    def test_mixed_results_fail_the_run(self, quiet_console):
        """Test one failure makes the run fail while the tally stays exact."""
        agg = ResultAggregator(total=3, console=quiet_console)
        agg.record(_outcome("a", Mode.DIRECT, 0))
        agg.record(_outcome("a", Mode.CONTAINERIZED, 1))
        agg.record(_outcome("b", Mode.DIRECT, 0))

        code = agg.finish()

        assert code == 1
        out = _output(quiet_console)
        assert "Some tests failed. 2/3 passed" in out
        assert "a/1 (exit 1)" in out

    def test_all_passed(self, quiet_console):
        """Test an all-green run exits 0."""
        agg = ResultAggregator(total=2, console=quiet_console)
        agg.record(_outcome("a", Mode.DIRECT, 0))
        agg.record(_outcome("a", Mode.CONTAINERIZED, 0))

        assert agg.finish() == 0
        assert "All tests passed! 2/2 passed" in _output(quiet_console)

    def test_empty_run_passes(self, quiet_console):
        """Test zero jobs is a vacuous pass."""
        agg = ResultAggregator(total=0, console=quiet_console)
        assert agg.finish() == 0
        assert "All tests passed! 0/0 passed" in _output(quiet_console)

    def test_any_nonzero_is_failure(self, quiet_console):
        """Test timeouts and signals count as failures."""
        agg = ResultAggregator(total=2, console=quiet_console)
        agg.record(_outcome("a", Mode.DIRECT, 124))
        agg.record(_outcome("a", Mode.CONTAINERIZED, -9))
        assert agg.result.failed == 2
        assert agg.finish() == 1

    def test_announce_progress_line(self, quiet_console):
        """Test the progress line names the scenario, mode and position."""
        agg = ResultAggregator(total=4, console=quiet_console)
        agg.record(_outcome("a", Mode.DIRECT, 0))

        agg.announce(Job(Scenario(Path("/examples/a")), Mode.CONTAINERIZED))

        assert 'Testing "a" on docker mode. [2/4]' in _output(quiet_console)

    def test_write_summary(self, quiet_console, tmp_path):
        """Test the JSON summary carries the tally and every outcome."""
        agg = ResultAggregator(total=2, console=quiet_console)
        agg.record(_outcome("a", Mode.DIRECT, 0, tmp_path / "a" / "0"))
        agg.record(_outcome("a", Mode.CONTAINERIZED, 2))

        path = agg.write_summary(tmp_path / "summary.json")

        data = json.loads(path.read_text())
        assert data["total"] == 2
        assert data["passed"] == 1
        assert data["failed"] == 1
        assert data["exit_code"] == 1
        assert data["outcomes"][0]["artifact"] == str(tmp_path / "a" / "0")
        assert data["outcomes"][1] == {
            "scenario": "a",
            "mode": "1",
            "exit_code": 2,
            "passed": False,
            "artifact": None,
            "duration_seconds": 0.0,
        }
