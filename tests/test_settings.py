from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest

from collectortest.settings import DEFAULT_PLAN_FILE, HarnessSettings, load_settings


def _write(tmp_path: Path, content: str, name: str = "collectortest.yaml") -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_defaults_without_file(tmp_path: Path) -> None:
    settings = load_settings(environ={}, cwd=tmp_path)
    assert settings == HarnessSettings()
    assert settings.plan_file == DEFAULT_PLAN_FILE


def test_default_file_in_cwd_is_picked_up(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
        plan_file: plans/smoke.config
        poll_interval: 0.25
        collector_paths: [collectors]
        plugins: [my_company.collectors]
        report:
          format: json
          path: out/report.json
          color: false
        """,
    )
    settings = load_settings(environ={}, cwd=tmp_path)
    assert settings.plan_file == "plans/smoke.config"
    assert settings.poll_interval == 0.25
    assert settings.collector_paths == (str((tmp_path / "collectors").resolve()),)
    assert settings.plugins == ("my_company.collectors",)
    assert settings.report_format == "json"
    assert settings.report_path == "out/report.json"
    assert settings.color is False


def test_explicit_path(tmp_path: Path) -> None:
    path = _write(tmp_path, "poll_interval: 2\n", name="custom.yaml")
    settings = load_settings(str(path), environ={})
    assert settings.poll_interval == 2.0


def test_empty_file_keeps_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path, "", name="empty.yaml")
    assert load_settings(str(path), environ={}) == HarnessSettings()


@pytest.mark.parametrize(
    "content, fragment",
    [
        ("unknown_key: 1\n", "Additional properties"),
        ("poll_interval: 0\n", "poll_interval"),
        ("report:\n  format: html\n", "report/format"),
        ("- a\n- b\n", "mapping"),
        ("plan_file: [unclosed\n", "not valid YAML"),
    ],
)
def test_invalid_settings_rejected(tmp_path: Path, content: str, fragment: str) -> None:
    path = _write(tmp_path, content, name="bad.yaml")
    with pytest.raises(ValueError, match=fragment):
        load_settings(str(path), environ={})


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unable to read"):
        load_settings(str(tmp_path / "absent.yaml"), environ={})


def test_environment_overrides(tmp_path: Path) -> None:
    _write(tmp_path, "plan_file: from_file.config\ncollector_paths: [a]\n")
    environ = {
        "COLLECTORTEST_PLAN": "from_env.config",
        "COLLECTORTEST_POLL_INTERVAL": "0.1",
        "COLLECTORTEST_COLLECTOR_PATH": os.pathsep.join(["/opt/x", "", "/opt/y"]),
    }
    settings = load_settings(environ=environ, cwd=tmp_path)
    assert settings.plan_file == "from_env.config"
    assert settings.poll_interval == 0.1
    assert settings.collector_paths == (str((tmp_path / "a").resolve()), "/opt/x", "/opt/y")


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_invalid_poll_interval_env(tmp_path: Path, value: str) -> None:
    with pytest.raises(ValueError, match="COLLECTORTEST_POLL_INTERVAL"):
        load_settings(environ={"COLLECTORTEST_POLL_INTERVAL": value}, cwd=tmp_path)
