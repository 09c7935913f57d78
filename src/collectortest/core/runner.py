"""Run a parsed plan against a loaded collector."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from collectortest.errors import HarnessError, MalformedPlanError
from collectortest.load.supervisor import DEFAULT_POLL_INTERVAL, LoadTestSupervisor
from collectortest.plan.models import TestPlan
from collectortest.reporting import JsonReporter, ReportManager, Reporter, TerminalReporter

from .engine import AssertionEngine


@dataclass(frozen=True)
class RunOptions:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    child_args: Sequence[str] = field(default_factory=tuple)
    report_format: str = "terminal"
    report_path: Optional[str] = None
    use_color: bool = True
    verbose: bool = False


def build_reporter(options: RunOptions) -> Reporter:
    if options.report_format == "json":
        return ReportManager([JsonReporter(options.report_path)])
    if options.report_format == "terminal":
        return ReportManager([TerminalReporter(use_color=options.use_color)])
    raise ValueError(f"Unknown report format '{options.report_format}'")


def run_plan(
    plan: TestPlan,
    collector: Any,
    options: Optional[RunOptions] = None,
    *,
    reporter: Optional[Reporter] = None,
    supervisor: Optional[LoadTestSupervisor] = None,
) -> int:
    """Execute the core checks, then the load tests; returns the process exit code (0 success, 1 failure)."""

    options = options or RunOptions()
    reporter = reporter or build_reporter(options)
    reporter.on_start(plan)
    try:
        AssertionEngine(collector, plan, reporter).run()
        if plan.load_test_checks:
            supervisor = supervisor or _make_supervisor(plan, options, reporter)
            supervisor.run(plan.load_test_checks)
    except HarnessError as exc:
        reporter.on_complete(False, exc)
        return 1
    reporter.on_complete(True)
    return 0


def _make_supervisor(plan: TestPlan, options: RunOptions, reporter: Reporter) -> LoadTestSupervisor:
    if plan.source is None:
        raise MalformedPlanError("Load tests relaunch the harness on the plan file; this plan was not loaded from a file")
    return LoadTestSupervisor(
        plan.source,
        child_args=options.child_args,
        poll_interval=options.poll_interval,
        reporter=reporter,
        verbose=options.verbose,
    )
