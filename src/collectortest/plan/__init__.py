"""Test plan model, parser and writer."""

from .loader import load_plan, parse_plan
from .models import (
    CollectSampleCheck,
    LoadTestCheck,
    MetricsCheck,
    RandomSampleCheck,
    SchemaExpectation,
    TestPlan,
)
from .writer import format_plan

__all__ = [
    "CollectSampleCheck",
    "LoadTestCheck",
    "MetricsCheck",
    "RandomSampleCheck",
    "SchemaExpectation",
    "TestPlan",
    "format_plan",
    "load_plan",
    "parse_plan",
]
