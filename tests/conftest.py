from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable, Optional

import pytest

from stubs import COLLECTOR_SOURCE


@pytest.fixture
def write_collector(tmp_path: Path) -> Callable[..., Path]:
    """Write ``<name>.py`` defining a collector class ``<name>``."""

    def _write(name: str = "FileCollector", directory: Optional[Path] = None) -> Path:
        target = (directory or tmp_path) / f"{name}.py"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(COLLECTOR_SOURCE.format(name=name), encoding="utf-8")
        return target

    return _write


@pytest.fixture
def write_plan(tmp_path: Path) -> Callable[..., Path]:
    def _write(content: str, name: str = "test_harness.config") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return path

    return _write
