"""Reporter interface definitions."""
from __future__ import annotations

from typing import List, Optional, Sequence

from collectortest.core.results import CheckResult, LoadTestResult
from collectortest.plan.models import LoadTestCheck, TestPlan


class Reporter:
    """Interface for output renderers."""

    def on_start(self, plan: TestPlan) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def on_check_result(self, result: CheckResult) -> None:  # pragma: no cover
        raise NotImplementedError

    def on_load_test_start(self, index: int, check: LoadTestCheck) -> None:  # pragma: no cover
        raise NotImplementedError

    def on_load_test_result(self, result: LoadTestResult) -> None:  # pragma: no cover
        raise NotImplementedError

    def on_complete(self, passed: bool, error: Optional[BaseException] = None) -> None:  # pragma: no cover
        raise NotImplementedError


class ReportManager(Reporter):
    """Dispatches lifecycle callbacks to multiple reporters."""

    def __init__(self, reporters: Sequence[Reporter] = ()) -> None:
        self._reporters = list(reporters)

    def on_start(self, plan: TestPlan) -> None:
        for reporter in self._reporters:
            reporter.on_start(plan)

    def on_check_result(self, result: CheckResult) -> None:
        for reporter in self._reporters:
            reporter.on_check_result(result)

    def on_load_test_start(self, index: int, check: LoadTestCheck) -> None:
        for reporter in self._reporters:
            reporter.on_load_test_start(index, check)

    def on_load_test_result(self, result: LoadTestResult) -> None:
        for reporter in self._reporters:
            reporter.on_load_test_result(result)

    def on_complete(self, passed: bool, error: Optional[BaseException] = None) -> None:
        for reporter in self._reporters:
            reporter.on_complete(passed, error)

    def reporters(self) -> List[Reporter]:
        return list(self._reporters)
