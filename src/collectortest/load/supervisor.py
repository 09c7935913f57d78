"""Out-of-process supervision of load-test sampling runs.

Each load-test entry runs in a fresh child process started as
``python -m collectortest load-test <index> <plan>``. The parent polls the
child's elapsed time and resident memory and kills it on the first budget
violation. Children run one at a time so memory readings are attributable.
"""
from __future__ import annotations

import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

import click

from collectortest.core.results import FAILED, PASSED, LoadTestResult
from collectortest.errors import ChildProcessLaunchError, ConformanceViolation, LoadBudgetExceeded
from collectortest.plan.models import LoadTestCheck
from collectortest.reporting.base import Reporter, ReportManager

from .monitor import ProcessMonitor, PsutilProcessMonitor

CHECK_LOAD_TEST = "load test"
DEFAULT_POLL_INTERVAL = 1.0
KILL_WAIT_SEC = 5.0
BYTES_PER_MB = 1024 * 1024


class ChildProcess(Protocol):
    pid: int

    def poll(self) -> Optional[int]:
        ...

    def wait(self, timeout: Optional[float] = None) -> int:
        ...


Launcher = Callable[[Sequence[str]], ChildProcess]


STDERR_FD = 2


def popen_launcher(argv: Sequence[str]) -> ChildProcess:
    # child stdout joins our stderr; stdout carries the report
    return subprocess.Popen(list(argv), stdout=STDERR_FD)


class LoadTestSupervisor:
    """Runs every load-test check of a plan as a monitored child process."""

    def __init__(
        self,
        plan_path: str | Path,
        *,
        child_args: Sequence[str] = (),
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        monitor: Optional[ProcessMonitor] = None,
        launcher: Optional[Launcher] = None,
        sleep: Callable[[float], None] = time.sleep,
        reporter: Optional[Reporter] = None,
        python: Optional[str] = None,
        verbose: bool = False,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._plan_path = Path(plan_path)
        self._child_args = tuple(child_args)
        self._poll_interval = poll_interval
        self._monitor = monitor or PsutilProcessMonitor()
        self._launcher = launcher or popen_launcher
        self._sleep = sleep
        self._reporter = reporter or ReportManager()
        self._python = python or sys.executable
        self._verbose = verbose

    def child_command(self, index: int) -> List[str]:
        return [
            self._python,
            "-m",
            "collectortest",
            *self._child_args,
            "load-test",
            str(index),
            str(self._plan_path),
        ]

    def run(self, checks: Sequence[LoadTestCheck]) -> List[LoadTestResult]:
        """Run checks sequentially; the first failure propagates and stops the rest."""
        return [self.run_check(index, check) for index, check in enumerate(checks)]

    def run_check(self, index: int, check: LoadTestCheck) -> LoadTestResult:
        self._reporter.on_load_test_start(index, check)
        argv = self.child_command(index)
        self._debug(f"launching {' '.join(argv)}")
        try:
            process = self._launcher(argv)
        except OSError as exc:
            raise ChildProcessLaunchError(f"Failed to start child process for load test #{index}: {exc}") from exc

        start = time.perf_counter()
        watch = _Watch()
        try:
            exit_code = self._watch(index, check, process, watch)
        except LoadBudgetExceeded as exc:
            self._report(index, check, FAILED, start, watch.peak_mb, None, str(exc))
            raise
        except BaseException:
            # monitor failure or interrupt; the child must not outlive the supervisor
            self._terminate(process)
            raise
        if exit_code != 0:
            message = f"Load test #{index} child exited with status {exit_code} ({_describe(check)})"
            self._report(index, check, FAILED, start, watch.peak_mb, exit_code, message)
            raise ConformanceViolation(CHECK_LOAD_TEST, message)
        return self._report(index, check, PASSED, start, watch.peak_mb, exit_code, "")

    def _watch(self, index: int, check: LoadTestCheck, process: ChildProcess, watch: "_Watch") -> int:
        while True:
            exit_code = process.poll()
            if exit_code is not None:
                return exit_code
            try:
                elapsed = self._monitor.elapsed_time(process.pid)
                rss = self._monitor.resident_memory(process.pid)
            except ProcessLookupError:
                # exited between poll() and the readings; poll() picks up the status
                self._sleep(self._poll_interval)
                continue
            rss_mb = rss // BYTES_PER_MB
            watch.observe(rss_mb)
            self._debug(f"load test #{index}: elapsed={elapsed:.1f}s rss={rss_mb}MB")
            if check.max_run_time_sec > 0 and elapsed > check.max_run_time_sec:
                self._terminate(process)
                raise LoadBudgetExceeded(
                    CHECK_LOAD_TEST,
                    f"Load test #{index} ({_describe(check)}) is running for {elapsed:.1f}s, which is more than "
                    f"the maximum of {check.max_run_time_sec} seconds",
                    dimension="time",
                    observed=elapsed,
                    budget=check.max_run_time_sec,
                )
            if check.max_memory_mb > 0 and rss_mb > check.max_memory_mb:
                self._terminate(process)
                raise LoadBudgetExceeded(
                    CHECK_LOAD_TEST,
                    f"Load test #{index} ({_describe(check)}) consumes {rss} bytes ({rss_mb} MB), which is more "
                    f"than the maximum of {check.max_memory_mb} MB",
                    dimension="memory",
                    observed=rss_mb,
                    budget=check.max_memory_mb,
                )
            self._sleep(self._poll_interval)

    def _terminate(self, process: ChildProcess) -> None:
        if process.poll() is not None:
            return
        try:
            self._monitor.terminate(process.pid)
        except OSError:
            pass  # already gone or not ours to kill; nothing more to do
        try:
            process.wait(timeout=KILL_WAIT_SEC)
        except subprocess.TimeoutExpired:
            pass

    def _report(
        self,
        index: int,
        check: LoadTestCheck,
        status: str,
        start: float,
        peak_mb: Optional[int],
        exit_code: Optional[int],
        details: str,
    ) -> LoadTestResult:
        result = LoadTestResult(
            index=index,
            check=check,
            status=status,
            duration_s=time.perf_counter() - start,
            peak_memory_mb=peak_mb,
            exit_code=exit_code,
            details=details,
        )
        self._reporter.on_load_test_result(result)
        return result

    def _debug(self, message: str) -> None:
        if self._verbose:
            click.echo(f"[DEBUG] {message}", err=True)


class _Watch:
    """Peak resident memory seen while polling one child."""

    def __init__(self) -> None:
        self.peak_mb: Optional[int] = None

    def observe(self, rss_mb: int) -> None:
        self.peak_mb = rss_mb if self.peak_mb is None else max(self.peak_mb, rss_mb)


def _describe(check: LoadTestCheck) -> str:
    return f"{check.collection_name}.{check.entity_name}, {check.sample_size} samples"
