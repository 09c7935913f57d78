"""Error taxonomy shared by the plan parser, engine and load-test supervisor."""
from __future__ import annotations

from typing import Optional


class HarnessError(Exception):
    """Base class for every fatal harness error."""


class MalformedPlanError(HarnessError, ValueError):
    """The plan file violates the plan grammar."""

    def __init__(self, message: str, *, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class PluginUnavailableError(HarnessError, LookupError):
    """The named collector cannot be located or instantiated."""


class ConformanceViolation(HarnessError, AssertionError):
    """A conformance check observed behavior that differs from the plan."""

    def __init__(self, check: str, message: str) -> None:
        self.check = check
        super().__init__(message)


class LoadBudgetExceeded(ConformanceViolation):
    """A load-test child exceeded its memory or run-time budget."""

    def __init__(self, check: str, message: str, *, dimension: str, observed: float, budget: float) -> None:
        self.dimension = dimension
        self.observed = observed
        self.budget = budget
        super().__init__(check, message)


class ChildProcessLaunchError(HarnessError, RuntimeError):
    """The supervisor could not start a load-test child process."""
