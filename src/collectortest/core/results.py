"""Result data structures produced while running a plan."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from collectortest.plan.models import LoadTestCheck

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class CheckResult:
    """Outcome of one conformance check."""

    name: str
    status: str
    duration_s: float
    details: str = ""

    @property
    def passed(self) -> bool:
        return self.status == PASSED


@dataclass
class LoadTestResult:
    """Outcome of one supervised load-test child."""

    index: int
    check: LoadTestCheck
    status: str
    duration_s: float
    peak_memory_mb: Optional[int] = None
    exit_code: Optional[int] = None
    details: str = ""

    @property
    def passed(self) -> bool:
        return self.status == PASSED
