"""JSON reporter emitting structured run results."""
from __future__ import annotations

import datetime as dt
import json
import pathlib
from typing import Any, Dict, Optional

import click
from jsonschema import validate

from collectortest.core.results import CheckResult, LoadTestResult
from collectortest.plan.models import LoadTestCheck, TestPlan

from .base import Reporter
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION


class JsonReporter(Reporter):
    """Writes results to a JSON file validated against the schema.

    With no path the document goes to stdout once the run completes.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = pathlib.Path(path) if path else None
        self._plan: Optional[TestPlan] = None
        self._checks: list[Dict[str, Any]] = []
        self._load_tests: list[Dict[str, Any]] = []

    def on_start(self, plan: TestPlan) -> None:
        self._plan = plan
        self._checks.clear()
        self._load_tests.clear()

    def on_check_result(self, result: CheckResult) -> None:
        self._checks.append(
            {
                "name": result.name,
                "status": result.status,
                "duration_ms": result.duration_s * 1000,
                "details": result.details,
            }
        )

    def on_load_test_start(self, index: int, check: LoadTestCheck) -> None:
        pass

    def on_load_test_result(self, result: LoadTestResult) -> None:
        check = result.check
        self._load_tests.append(
            {
                "index": result.index,
                "collection": check.collection_name,
                "entity": check.entity_name,
                "sample_size": check.sample_size,
                "max_memory_mb": check.max_memory_mb,
                "max_run_time_sec": check.max_run_time_sec,
                "status": result.status,
                "duration_s": result.duration_s,
                "peak_memory_mb": result.peak_memory_mb,
                "exit_code": result.exit_code,
                "details": result.details,
            }
        )

    def on_complete(self, passed: bool, error: Optional[BaseException] = None) -> None:
        if self._plan is None:
            return
        payload = {
            "schema_version": SCHEMA_VERSION,
            "generated_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "collector": self._plan.collector_name,
            "plan": str(self._plan.source) if self._plan.source is not None else None,
            "passed": passed,
            "error": str(error) if error is not None else None,
            "checks": self._checks,
            "load_tests": self._load_tests,
        }
        validate(instance=payload, schema=JSON_SCHEMA_V1)
        text = json.dumps(payload, indent=2)
        if self._path is None:
            click.echo(text)
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")
