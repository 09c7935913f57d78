"""Result models shared by the engine, supervisor and reporters."""
from .results import FAILED, PASSED, SKIPPED, CheckResult, LoadTestResult

__all__ = [
    "FAILED",
    "PASSED",
    "SKIPPED",
    "CheckResult",
    "LoadTestResult",
]
