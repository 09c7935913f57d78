"""Data models for parsed test plans."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence


@dataclass(frozen=True)
class SchemaExpectation:
    table_count: int
    entity_count: int


@dataclass(frozen=True)
class CollectSampleCheck:
    collection_name: str
    entity_name: str
    sample_size: int
    expected_values: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class RandomSampleCheck:
    collection_name: str
    entity_name: str
    sample_size: int


@dataclass(frozen=True)
class MetricsCheck:
    collection_name: str
    row_count: int
    total_size: Decimal
    total_size_precision: int
    used_size: Decimal
    used_size_precision: int


@dataclass(frozen=True)
class LoadTestCheck:
    """Sampling run executed in a monitored child; a budget of 0 is unbounded."""

    collection_name: str
    entity_name: str
    sample_size: int
    max_memory_mb: int = 0
    max_run_time_sec: int = 0


@dataclass(frozen=True)
class TestPlan:
    collector_name: str
    connection_string: str
    schema: Optional[SchemaExpectation] = None
    collect_sample_checks: Sequence[CollectSampleCheck] = field(default_factory=tuple)
    random_sample_checks: Sequence[RandomSampleCheck] = field(default_factory=tuple)
    metrics_checks: Sequence[MetricsCheck] = field(default_factory=tuple)
    load_test_checks: Sequence[LoadTestCheck] = field(default_factory=tuple)
    source: Optional[Path] = field(default=None, compare=False)

    __test__ = False  # not a pytest test class
