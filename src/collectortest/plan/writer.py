"""Serialize a :class:`TestPlan` back to the plan text format."""
from __future__ import annotations

from decimal import Decimal
from typing import List

from .loader import (
    COLLECTSAMPLE,
    DATACOLLECTIONMETRICS,
    FIELD_SEPARATOR,
    GETSCHEMA,
    LOADTEST,
    RANDOMSAMPLE,
)
from .models import TestPlan


def format_plan(plan: TestPlan) -> str:
    lines: List[str] = [plan.collector_name, plan.connection_string]
    if plan.schema is not None:
        lines.append(_join(GETSCHEMA, plan.schema.table_count, plan.schema.entity_count))
    for check in plan.collect_sample_checks:
        lines.append(
            _join(COLLECTSAMPLE, check.collection_name, check.entity_name, check.sample_size, *check.expected_values)
        )
    for check in plan.random_sample_checks:
        lines.append(_join(RANDOMSAMPLE, check.collection_name, check.entity_name, check.sample_size))
    for check in plan.metrics_checks:
        lines.append(
            _join(
                DATACOLLECTIONMETRICS,
                check.collection_name,
                check.row_count,
                _format_decimal(check.total_size, check.total_size_precision),
                _format_decimal(check.used_size, check.used_size_precision),
            )
        )
    for check in plan.load_test_checks:
        lines.append(
            _join(
                LOADTEST,
                check.collection_name,
                check.entity_name,
                check.sample_size,
                check.max_memory_mb,
                check.max_run_time_sec,
            )
        )
    return "\n".join(lines) + "\n"


def _join(*parts: object) -> str:
    return FIELD_SEPARATOR.join(str(part) for part in parts)


def _format_decimal(value: Decimal, precision: int) -> str:
    return format(value, f".{precision}f")
