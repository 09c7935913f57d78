from __future__ import annotations

import subprocess
from typing import List, Optional, Sequence
from unittest import mock

import pytest

from collectortest.core.results import FAILED, PASSED
from collectortest.errors import ChildProcessLaunchError, ConformanceViolation, LoadBudgetExceeded
from collectortest.load.monitor import ProcessMonitor
from collectortest.load.supervisor import BYTES_PER_MB, STDERR_FD, LoadTestSupervisor, popen_launcher
from collectortest.plan import LoadTestCheck
from collectortest.reporting.base import ReportManager

MB = BYTES_PER_MB


class FakeProcess:
    """Reports ``None`` from poll() for ``running_polls`` calls, then ``exit_code``."""

    def __init__(self, pid: int, running_polls: int, exit_code: int = 0) -> None:
        self.pid = pid
        self.running_polls = running_polls
        self.exit_code = exit_code
        self.killed = False
        self.wait_timeouts: List[Optional[float]] = []

    def poll(self) -> Optional[int]:
        if self.killed:
            return -9
        if self.running_polls > 0:
            self.running_polls -= 1
            return None
        return self.exit_code

    def wait(self, timeout: Optional[float] = None) -> int:
        self.wait_timeouts.append(timeout)
        return -9 if self.killed else self.exit_code


class FakeLauncher:
    def __init__(self, *processes: FakeProcess) -> None:
        self.processes = list(processes)
        self.commands: List[List[str]] = []

    def __call__(self, argv: Sequence[str]) -> FakeProcess:
        self.commands.append(list(argv))
        return self.processes.pop(0)


class FakeMonitor(ProcessMonitor):
    """Each reading advances a scripted timeline of (elapsed seconds, rss bytes)."""

    def __init__(self, timeline, *, terminate_error: Optional[Exception] = None, processes=()) -> None:
        self.timeline = list(timeline)
        self.position = -1
        self.terminated: List[int] = []
        self.terminate_error = terminate_error
        self.processes = {p.pid: p for p in processes}

    def elapsed_time(self, pid: int) -> float:
        self.position += 1
        entry = self.timeline[min(self.position, len(self.timeline) - 1)]
        if entry is None:
            raise ProcessLookupError(pid)
        return entry[0]

    def resident_memory(self, pid: int) -> int:
        return self.timeline[min(self.position, len(self.timeline) - 1)][1]

    def terminate(self, pid: int) -> None:
        self.terminated.append(pid)
        if pid in self.processes:
            self.processes[pid].killed = True
        if self.terminate_error is not None:
            raise self.terminate_error


class RecordingReporter(ReportManager):
    def __init__(self) -> None:
        super().__init__()
        self.started: List[int] = []
        self.results = []

    def on_load_test_start(self, index, check) -> None:
        self.started.append(index)

    def on_load_test_result(self, result) -> None:
        self.results.append(result)


def _supervisor(launcher, monitor, reporter=None, sleeps=None):
    return LoadTestSupervisor(
        "/plans/test_harness.config",
        child_args=("--verbose",),
        poll_interval=0.5,
        monitor=monitor,
        launcher=launcher,
        sleep=(sleeps.append if sleeps is not None else (lambda _: None)),
        reporter=reporter,
        python="/usr/bin/python3",
    )


CHECK = LoadTestCheck("email", "subject", 1000, max_memory_mb=200, max_run_time_sec=30)


def test_child_command_shape() -> None:
    supervisor = _supervisor(FakeLauncher(), FakeMonitor([]))
    assert supervisor.child_command(2) == [
        "/usr/bin/python3",
        "-m",
        "collectortest",
        "--verbose",
        "load-test",
        "2",
        "/plans/test_harness.config",
    ]


def test_poll_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LoadTestSupervisor("plan", poll_interval=0)


def test_child_within_budget_passes() -> None:
    process = FakeProcess(pid=100, running_polls=2)
    monitor = FakeMonitor([(10.0, 50 * MB), (29.0, 120 * MB)])
    reporter = RecordingReporter()
    sleeps: List[float] = []
    results = _supervisor(FakeLauncher(process), monitor, reporter, sleeps).run([CHECK])

    assert [r.status for r in results] == [PASSED]
    assert results[0].peak_memory_mb == 120
    assert results[0].exit_code == 0
    assert monitor.terminated == []
    assert sleeps == [0.5, 0.5]
    assert reporter.started == [0]
    assert reporter.results == results


def test_time_budget_breach_kills_child() -> None:
    process = FakeProcess(pid=101, running_polls=5)
    monitor = FakeMonitor([(10.0, MB), (31.0, MB)], processes=[process])
    reporter = RecordingReporter()
    with pytest.raises(LoadBudgetExceeded) as exc:
        _supervisor(FakeLauncher(process), monitor, reporter).run([CHECK])

    assert exc.value.dimension == "time"
    assert exc.value.observed == 31.0
    assert exc.value.budget == 30
    assert "more than the maximum of 30 seconds" in str(exc.value)
    assert monitor.terminated == [101]
    assert process.wait_timeouts == [5.0]
    assert reporter.results[-1].status == FAILED


def test_memory_budget_breach_kills_child() -> None:
    process = FakeProcess(pid=102, running_polls=5)
    monitor = FakeMonitor([(1.0, 150 * MB), (2.0, 201 * MB)], processes=[process])
    with pytest.raises(LoadBudgetExceeded) as exc:
        _supervisor(FakeLauncher(process), monitor).run([CHECK])

    assert exc.value.dimension == "memory"
    assert exc.value.observed == 201
    assert "more than the maximum of 200 MB" in str(exc.value)
    assert monitor.terminated == [102]


def test_memory_is_compared_in_whole_megabytes() -> None:
    process = FakeProcess(pid=103, running_polls=1)
    monitor = FakeMonitor([(1.0, 200 * MB + MB - 1)])
    results = _supervisor(FakeLauncher(process), monitor).run([CHECK])
    assert results[0].peak_memory_mb == 200


def test_zero_budgets_are_unlimited() -> None:
    check = LoadTestCheck("email", "subject", 10)
    process = FakeProcess(pid=104, running_polls=2)
    monitor = FakeMonitor([(9999.0, 4096 * MB)])
    results = _supervisor(FakeLauncher(process), monitor).run([check])
    assert results[0].passed
    assert monitor.terminated == []


def test_terminate_errors_are_ignored() -> None:
    process = FakeProcess(pid=105, running_polls=5)
    monitor = FakeMonitor([(45.0, MB)], terminate_error=ProcessLookupError(105))
    with pytest.raises(LoadBudgetExceeded):
        _supervisor(FakeLauncher(process), monitor).run([CHECK])
    assert monitor.terminated == [105]


def test_wait_timeout_after_kill_is_ignored() -> None:
    class StuckProcess(FakeProcess):
        def wait(self, timeout=None):
            raise subprocess.TimeoutExpired("child", timeout)

    process = StuckProcess(pid=106, running_polls=5)
    monitor = FakeMonitor([(45.0, MB)])
    with pytest.raises(LoadBudgetExceeded):
        _supervisor(FakeLauncher(process), monitor).run([CHECK])


def test_process_gone_between_poll_and_reading() -> None:
    process = FakeProcess(pid=107, running_polls=1)
    monitor = FakeMonitor([None])
    results = _supervisor(FakeLauncher(process), monitor).run([CHECK])
    assert results[0].passed
    assert results[0].peak_memory_mb is None


def test_non_zero_exit_is_a_violation() -> None:
    process = FakeProcess(pid=108, running_polls=0, exit_code=3)
    reporter = RecordingReporter()
    with pytest.raises(ConformanceViolation, match="exited with status 3") as exc:
        _supervisor(FakeLauncher(process), FakeMonitor([]), reporter).run([CHECK])
    assert not isinstance(exc.value, LoadBudgetExceeded)
    assert reporter.results[-1].exit_code == 3


def test_launch_failure() -> None:
    def broken_launcher(argv):
        raise FileNotFoundError("python not found")

    with pytest.raises(ChildProcessLaunchError, match="load test #0"):
        _supervisor(broken_launcher, FakeMonitor([])).run([CHECK])


def test_checks_run_sequentially_and_stop_at_first_failure() -> None:
    first = FakeProcess(pid=200, running_polls=1)
    second = FakeProcess(pid=201, running_polls=5)
    third = FakeProcess(pid=202, running_polls=0)
    launcher = FakeLauncher(first, second, third)
    monitor = FakeMonitor([(1.0, MB), (99.0, MB)], processes=[second])
    reporter = RecordingReporter()
    checks = [CHECK, LoadTestCheck("people", "name", 5, max_run_time_sec=10), CHECK]

    with pytest.raises(LoadBudgetExceeded):
        _supervisor(launcher, monitor, reporter).run(checks)

    assert [command[-2] for command in launcher.commands] == ["0", "1"]
    assert reporter.started == [0, 1]
    assert launcher.processes == [third]


def test_monitor_error_kills_child() -> None:
    class BrokenMonitor(FakeMonitor):
        def resident_memory(self, pid: int) -> int:
            raise RuntimeError("rss unavailable")

    process = FakeProcess(pid=300, running_polls=5)
    monitor = BrokenMonitor([(1.0, MB)], processes=[process])
    with pytest.raises(RuntimeError, match="rss unavailable"):
        _supervisor(FakeLauncher(process), monitor).run([CHECK])
    assert monitor.terminated == [300]
    assert process.wait_timeouts == [5.0]


def test_interrupt_while_sleeping_kills_child() -> None:
    def interrupted(_: float) -> None:
        raise KeyboardInterrupt

    process = FakeProcess(pid=301, running_polls=5)
    monitor = FakeMonitor([(1.0, MB)], processes=[process])
    supervisor = LoadTestSupervisor(
        "plan", monitor=monitor, launcher=FakeLauncher(process), sleep=interrupted, python="python"
    )
    with pytest.raises(KeyboardInterrupt):
        supervisor.run([CHECK])
    assert monitor.terminated == [301]


def test_exited_child_is_not_killed_again() -> None:
    class FailingMonitor(FakeMonitor):
        def elapsed_time(self, pid: int) -> float:
            process.running_polls = 0
            raise RuntimeError("rss unavailable")

    process = FakeProcess(pid=302, running_polls=5)
    monitor = FailingMonitor([(1.0, MB)])
    with pytest.raises(RuntimeError):
        _supervisor(FakeLauncher(process), monitor).run([CHECK])
    assert monitor.terminated == []


def test_popen_launcher_sends_child_stdout_to_stderr() -> None:
    with mock.patch("subprocess.Popen") as popen:
        popen_launcher(("python", "-m", "collectortest"))
    popen.assert_called_once_with(["python", "-m", "collectortest"], stdout=STDERR_FD)
