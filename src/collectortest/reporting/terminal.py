"""Terminal reporter rendering check progress and the final verdict."""
from __future__ import annotations

from typing import Optional

import click
from colorama import Fore, Style, just_fix_windows_console

from collectortest.core.results import CheckResult, LoadTestResult
from collectortest.plan.models import LoadTestCheck, TestPlan
from collectortest.version import __version__

from .base import Reporter

STATUS_LABELS = {
    "passed": ("PASS", Fore.GREEN),
    "failed": ("FAIL", Fore.RED),
    "skipped": ("SKIP", Fore.YELLOW),
}


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout."""

    def __init__(self, *, use_color: bool = True) -> None:
        self._use_color = use_color
        if use_color:
            just_fix_windows_console()

    def on_start(self, plan: TestPlan) -> None:
        click.echo(self._styled(f"collectortest v{__version__}", Fore.CYAN))
        if plan.source is not None:
            click.echo(f"   loaded {plan.source}")
        click.echo(f"Testing {plan.collector_name}")
        click.echo()

    def on_check_result(self, result: CheckResult) -> None:
        ms = result.duration_s * 1000
        click.echo(f"{self._status(result.status)} {result.name} ({ms:.2f} ms)")
        if result.details:
            click.echo(f"    {'error' if result.status == 'failed' else 'detail'}: {result.details}")

    def on_load_test_start(self, index: int, check: LoadTestCheck) -> None:
        budgets = []
        if check.max_memory_mb > 0:
            budgets.append(f"max {check.max_memory_mb} MB")
        if check.max_run_time_sec > 0:
            budgets.append(f"max {check.max_run_time_sec} s")
        budget_text = ", ".join(budgets) if budgets else "unbounded"
        click.echo(
            f"#{index}. Loading {check.sample_size} samples from "
            f"{check.collection_name}.{check.entity_name} ({budget_text})..."
        )

    def on_load_test_result(self, result: LoadTestResult) -> None:
        peak = f" peak={result.peak_memory_mb}MB" if result.peak_memory_mb is not None else ""
        click.echo(f"{self._status(result.status)} load test #{result.index} ({result.duration_s:.2f} s{peak})")
        if result.details:
            click.echo(f"    error: {result.details}")

    def on_complete(self, passed: bool, error: Optional[BaseException] = None) -> None:
        click.echo()
        if passed:
            click.echo(self._styled("All tests passed.", Fore.GREEN))
            return
        click.echo(self._styled(f"FAIL! {error}", Fore.RED))

    def _status(self, status: str) -> str:
        label, color = STATUS_LABELS.get(status, (status.upper(), ""))
        return self._styled(f"{label:<5}", color)

    def _styled(self, text: str, color: str) -> str:
        if not self._use_color or not color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"
