"""Restricted single-check mode executed inside a load-test child process."""
from __future__ import annotations

from typing import Any

import click

from collectortest.collectors.base import DataContainer, string_entity
from collectortest.errors import MalformedPlanError
from collectortest.plan.models import TestPlan


def run_load_test_entry(collector: Any, plan: TestPlan, index: int) -> int:
    """Collect the sample named by ``plan.load_test_checks[index]``; returns the sample count."""

    checks = plan.load_test_checks
    if not 0 <= index < len(checks):
        raise MalformedPlanError(f"Load test index {index} is out of range (plan defines {len(checks)} load test(s))")
    check = checks[index]
    container = DataContainer(connection_string=plan.connection_string)
    entity = string_entity(container, check.collection_name, check.entity_name)
    click.echo("Load testing... ", nl=False, err=True)
    samples = collector.collect_sample(entity, check.sample_size)
    count = len(samples) if samples is not None else 0
    click.echo(f" - success, collected {count} samples.", err=True)
    return count
