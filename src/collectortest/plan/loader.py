"""Parser for the line-oriented, pipe-delimited plan format."""
from __future__ import annotations

import re
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from collectortest.errors import MalformedPlanError

from .models import (
    CollectSampleCheck,
    LoadTestCheck,
    MetricsCheck,
    RandomSampleCheck,
    SchemaExpectation,
    TestPlan,
)

COMMENT_PREFIX = "#"
FIELD_SEPARATOR = "|"

GETSCHEMA = "getschema"
COLLECTSAMPLE = "collectsample"
RANDOMSAMPLE = "randomsample"
DATACOLLECTIONMETRICS = "datacollectionmetrics"
LOADTEST = "loadtest"

# Plain decimal literal, no exponent: "12", "-3.5", "12.340", ".5", "7."
_DECIMAL_LITERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)
_INTEGER_LITERAL = re.compile(r"[+-]?\d+", re.ASCII)


def load_plan(path: str | Path) -> TestPlan:
    """Read and parse a plan file."""
    plan_path = Path(path).expanduser()
    try:
        text = plan_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise MalformedPlanError(f"Plan file not found: {plan_path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedPlanError(f"Unable to read plan file {plan_path}: {exc}") from exc
    return parse_plan(text, source=plan_path.resolve())


def parse_plan(text: str, *, source: Optional[Path] = None) -> TestPlan:
    """Parse plan text into a :class:`TestPlan`.

    Blank lines and ``#`` comments are skipped and do not count toward the
    positional header lines. Records of an unknown kind are ignored.
    """
    builder = _PlanBuilder()
    position = 0
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        stripped = raw_line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue
        if position == 0:
            builder.collector_name = stripped
        elif position == 1:
            builder.connection_string = raw_line
        else:
            builder.add_record(raw_line, line_number)
        position += 1
    if position == 0:
        raise MalformedPlanError("Plan is missing the collector name line")
    if position == 1:
        raise MalformedPlanError("Plan is missing the connection string line")
    return builder.build(source)


class _PlanBuilder:
    def __init__(self) -> None:
        self.collector_name = ""
        self.connection_string = ""
        self.schema: Optional[SchemaExpectation] = None
        self.collect_samples: List[CollectSampleCheck] = []
        self.random_samples: List[RandomSampleCheck] = []
        self.metrics: List[MetricsCheck] = []
        self.load_tests: List[LoadTestCheck] = []
        self._occurrences: Dict[str, int] = {}
        self._handlers: Dict[str, Callable[["_Record"], None]] = {
            GETSCHEMA: self._add_schema,
            COLLECTSAMPLE: self._add_collect_sample,
            RANDOMSAMPLE: self._add_random_sample,
            DATACOLLECTIONMETRICS: self._add_metrics,
            LOADTEST: self._add_load_test,
        }

    def add_record(self, raw_line: str, line_number: int) -> None:
        fields = raw_line.split(FIELD_SEPARATOR)
        kind = fields[0].strip().lower()
        handler = self._handlers.get(kind)
        if handler is None:
            return
        occurrence = self._occurrences.get(kind, 0) + 1
        self._occurrences[kind] = occurrence
        handler(_Record(kind, occurrence, line_number, fields))

    def build(self, source: Optional[Path]) -> TestPlan:
        return TestPlan(
            collector_name=self.collector_name,
            connection_string=self.connection_string,
            schema=self.schema,
            collect_sample_checks=tuple(self.collect_samples),
            random_sample_checks=tuple(self.random_samples),
            metrics_checks=tuple(self.metrics),
            load_test_checks=tuple(self.load_tests),
            source=source,
        )

    def _add_schema(self, record: "_Record") -> None:
        self.schema = SchemaExpectation(
            table_count=record.count(1, "table count"),
            entity_count=record.count(2, "entity count"),
        )

    def _add_collect_sample(self, record: "_Record") -> None:
        self.collect_samples.append(
            CollectSampleCheck(
                collection_name=record.text(1, "collection name"),
                entity_name=record.text(2, "entity name"),
                sample_size=record.count(3, "sample size"),
                expected_values=tuple(value.strip() for value in record.fields[4:]),
            )
        )

    def _add_random_sample(self, record: "_Record") -> None:
        self.random_samples.append(
            RandomSampleCheck(
                collection_name=record.text(1, "collection name"),
                entity_name=record.text(2, "entity name"),
                sample_size=record.count(3, "sample size"),
            )
        )

    def _add_metrics(self, record: "_Record") -> None:
        total_size, total_precision = record.decimal(3, "total size")
        used_size, used_precision = record.decimal(4, "used size")
        self.metrics.append(
            MetricsCheck(
                collection_name=record.text(1, "collection name"),
                row_count=record.count(2, "row count"),
                total_size=total_size,
                total_size_precision=total_precision,
                used_size=used_size,
                used_size_precision=used_precision,
            )
        )

    def _add_load_test(self, record: "_Record") -> None:
        self.load_tests.append(
            LoadTestCheck(
                collection_name=record.text(1, "collection name"),
                entity_name=record.text(2, "entity name"),
                sample_size=record.count(3, "sample size"),
                max_memory_mb=record.count(4, "max memory (MB)"),
                max_run_time_sec=record.count(5, "max run time (s)"),
            )
        )


class _Record:
    """One pipe-delimited record with field accessors that raise plan errors."""

    def __init__(self, kind: str, occurrence: int, line_number: int, fields: Sequence[str]) -> None:
        self.kind = kind
        self.occurrence = occurrence
        self.line_number = line_number
        self.fields = fields

    def error(self, message: str) -> MalformedPlanError:
        return MalformedPlanError(f"{self.kind} record #{self.occurrence}: {message}", line=self.line_number)

    def raw(self, index: int, label: str) -> str:
        if index >= len(self.fields):
            raise self.error(f"missing {label} (field {index + 1})")
        return self.fields[index]

    def text(self, index: int, label: str) -> str:
        return self.raw(index, label).strip()

    def count(self, index: int, label: str) -> int:
        raw = self.raw(index, label)
        literal = raw.strip()
        if not _INTEGER_LITERAL.fullmatch(literal):
            raise self.error(f"{label} '{raw}' is not an integer")
        value = int(literal)
        if value < 0:
            raise self.error(f"{label} must not be negative, got {value}")
        return value

    def decimal(self, index: int, label: str) -> Tuple[Decimal, int]:
        raw = self.raw(index, label)
        literal = raw.strip()
        if not _DECIMAL_LITERAL.fullmatch(literal):
            raise self.error(f"{label} '{raw}' is not a decimal number")
        return Decimal(literal), decimal_precision(literal)


def decimal_precision(literal: str) -> int:
    """Number of characters after the first ``.`` in ``literal`` (0 when absent)."""
    text = literal.strip()
    dot = text.find(".")
    if dot < 0:
        return 0
    return len(text[dot + 1 :].strip())
