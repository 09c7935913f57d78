"""Ordered conformance checks run against a loaded collector."""
from __future__ import annotations

import time
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, Callable, List, Optional, Sequence, Union

from collectortest.collectors.base import DataContainer, string_entity
from collectortest.errors import ConformanceViolation
from collectortest.plan.models import TestPlan
from collectortest.reporting.base import Reporter, ReportManager

from .results import FAILED, PASSED, SKIPPED, CheckResult

CHECK_DATA_STORE_TYPES = "data store types"
CHECK_CONNECTION = "connection"
CHECK_SCHEMA = "schema"
CHECK_COLLECT_SAMPLE = "collect sample"
CHECK_RANDOM_SAMPLE = "random sample"
CHECK_METRICS = "data collection metrics"

RANDOM_SAMPLE_DRAWS = 3


class _Skipped(Exception):
    pass


class AssertionEngine:
    """Runs the core checks in fixed order and stops at the first violation.

    Order matters: sampling is only attempted once the collector has reported
    a store type and a working connection. A failing check is reported and its
    :class:`ConformanceViolation` propagates to the caller.
    """

    def __init__(self, collector: Any, plan: TestPlan, reporter: Optional[Reporter] = None) -> None:
        self._collector = collector
        self._plan = plan
        self._reporter = reporter or ReportManager()
        self._container = DataContainer(connection_string=plan.connection_string)

    @property
    def container(self) -> DataContainer:
        return self._container

    def checks(self) -> Sequence[tuple[str, Callable[[], str]]]:
        return (
            (CHECK_DATA_STORE_TYPES, self.check_data_store_types),
            (CHECK_CONNECTION, self.check_connection),
            (CHECK_SCHEMA, self.check_schema),
            (CHECK_COLLECT_SAMPLE, self.check_collect_sample),
            (CHECK_RANDOM_SAMPLE, self.check_random_sample),
            (CHECK_METRICS, self.check_metrics),
        )

    def run(self) -> List[CheckResult]:
        results: List[CheckResult] = []
        for name, check in self.checks():
            results.append(self._run_check(name, check))
        return results

    def _run_check(self, name: str, check: Callable[[], str]) -> CheckResult:
        start = time.perf_counter()
        try:
            details = check()
            status = PASSED
        except _Skipped:
            details = ""
            status = SKIPPED
        except ConformanceViolation as exc:
            self._report_failure(name, start, exc)
            raise
        except Exception as exc:
            violation = ConformanceViolation(name, f"Collector raised {type(exc).__name__} during {name} check: {exc}")
            self._report_failure(name, start, violation)
            raise violation from exc
        result = CheckResult(name=name, status=status, duration_s=time.perf_counter() - start, details=details)
        self._reporter.on_check_result(result)
        return result

    def _report_failure(self, name: str, start: float, exc: ConformanceViolation) -> None:
        result = CheckResult(name=name, status=FAILED, duration_s=time.perf_counter() - start, details=str(exc))
        self._reporter.on_check_result(result)

    def check_data_store_types(self) -> str:
        store_types = list(self._collector.supported_store_types() or ())
        if not store_types:
            raise ConformanceViolation(
                CHECK_DATA_STORE_TYPES,
                "No data store types reported by supported_store_types() (actual 0, expected at least 1)",
            )
        label = "Data store type supported" if len(store_types) == 1 else "Data store types supported"
        return f"{label}: {', '.join(str(t) for t in store_types)}"

    def check_connection(self) -> str:
        if not self._collector.test_connection(self._container):
            raise ConformanceViolation(
                CHECK_CONNECTION,
                f"Could not connect to data store using {self._container.connection_string}",
            )
        return "Connection to data store succeeded"

    def check_schema(self) -> str:
        expected = self._plan.schema
        if expected is None:
            raise _Skipped()
        tables, entities = self._collector.get_schema(self._container)
        if len(tables) != expected.table_count:
            raise ConformanceViolation(
                CHECK_SCHEMA,
                f"The table count from get_schema() ({len(tables)}) did not match the expected value of "
                f"{expected.table_count}",
            )
        if len(entities) != expected.entity_count:
            raise ConformanceViolation(
                CHECK_SCHEMA,
                f"The entity count from get_schema() ({len(entities)}) did not match the expected value of "
                f"{expected.entity_count}",
            )
        return f"{len(tables)} table(s), {len(entities)} entities"

    def check_collect_sample(self) -> str:
        checks = self._plan.collect_sample_checks
        if not checks:
            raise _Skipped()
        for check in checks:
            samples = self._sample(CHECK_COLLECT_SAMPLE, check.collection_name, check.entity_name, check.sample_size)
            for value in check.expected_values:
                if value not in samples:
                    raise ConformanceViolation(
                        CHECK_COLLECT_SAMPLE,
                        f"The sample value '{value}' was not found in the {len(samples)} sample(s) from "
                        f"{check.collection_name}.{check.entity_name} (actual: {_preview(samples)})",
                    )
        return f"{len(checks)} sample check(s)"

    def check_random_sample(self) -> str:
        checks = self._plan.random_sample_checks
        if not checks:
            raise _Skipped()
        for check in checks:
            draws = [
                set(self._sample(CHECK_RANDOM_SAMPLE, check.collection_name, check.entity_name, check.sample_size))
                for _ in range(RANDOM_SAMPLE_DRAWS)
            ]
            if not draws_differ(draws):
                raise ConformanceViolation(
                    CHECK_RANDOM_SAMPLE,
                    f"Samples from {check.collection_name}.{check.entity_name} are equal after "
                    f"{RANDOM_SAMPLE_DRAWS} read attempts (actual: identical draws {_preview(sorted(draws[0]))}, "
                    "expected: at least one differing draw)",
                )
        return f"{len(checks)} random sample check(s)"

    def check_metrics(self) -> str:
        checks = self._plan.metrics_checks
        if not checks:
            raise _Skipped()
        metrics = list(self._collector.get_collection_metrics(self._container) or ())
        for check in checks:
            metric = next((m for m in metrics if m.name == check.collection_name), None)
            if metric is None:
                reported = ", ".join(repr(m.name) for m in metrics) or "none"
                raise ConformanceViolation(
                    CHECK_METRICS,
                    f"Metric for data collection '{check.collection_name}' is not found (reported: {reported})",
                )
            if metric.row_count != check.row_count:
                raise ConformanceViolation(
                    CHECK_METRICS,
                    f"Row count for data collection '{check.collection_name}' ({metric.row_count}) does not match "
                    f"expected value {check.row_count}",
                )
            self._compare_size("Used size", check.collection_name, metric.used_space_kb, check.used_size, check.used_size_precision)
            self._compare_size(
                "Total size", check.collection_name, metric.total_space_kb, check.total_size, check.total_size_precision
            )
        return f"{len(checks)} metric check(s)"

    def _compare_size(self, label: str, collection: str, reported: Any, expected: Decimal, precision: int) -> None:
        rounded = round_half_even(reported, precision)
        if rounded != expected:
            raise ConformanceViolation(
                CHECK_METRICS,
                f"{label} for data collection '{collection}' ({rounded}, rounded from {reported}) does not match "
                f"expected value {expected}",
            )

    def _sample(self, check_name: str, collection_name: str, entity_name: str, sample_size: int) -> List[str]:
        entity = string_entity(self._container, collection_name, entity_name)
        samples = list(self._collector.collect_sample(entity, sample_size) or ())
        if len(samples) != sample_size:
            raise ConformanceViolation(
                check_name,
                f"The number of samples ({len(samples)}) from {collection_name}.{entity_name} does not match the "
                f"expected value of {sample_size}",
            )
        return samples


def draws_differ(draws: Sequence[set]) -> bool:
    """True when at least one pair of draws has a non-empty symmetric difference."""
    return any(draws[i] ^ draws[j] for i in range(len(draws)) for j in range(i + 1, len(draws)))


def round_half_even(value: Union[Decimal, float, int, str], precision: int) -> Decimal:
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    try:
        return number.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        # precision beyond the context's digits; nothing left to round
        return number


def _preview(values: Sequence[Any], limit: int = 10) -> str:
    shown = ", ".join(repr(v) for v in list(values)[:limit])
    if len(values) > limit:
        shown += f", ... ({len(values) - limit} more)"
    return f"[{shown}]"
