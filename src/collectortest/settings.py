"""Harness settings: defaults, optional YAML file, environment overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import yaml
from jsonschema import Draft7Validator

DEFAULT_PLAN_FILE = "test_harness.config"
DEFAULT_SETTINGS_FILE = "collectortest.yaml"

ENV_PLAN = "COLLECTORTEST_PLAN"
ENV_POLL_INTERVAL = "COLLECTORTEST_POLL_INTERVAL"
ENV_COLLECTOR_PATH = "COLLECTORTEST_COLLECTOR_PATH"

SETTINGS_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "plan_file": {"type": "string", "minLength": 1},
        "poll_interval": {"type": "number", "exclusiveMinimum": 0},
        "collector_paths": {"type": "array", "items": {"type": "string"}},
        "plugins": {"type": "array", "items": {"type": "string"}},
        "report": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "format": {"enum": ["terminal", "json"]},
                "path": {"type": ["string", "null"]},
                "color": {"type": "boolean"},
            },
        },
    },
}
_validator = Draft7Validator(SETTINGS_SCHEMA)


@dataclass(frozen=True)
class HarnessSettings:
    plan_file: str = DEFAULT_PLAN_FILE
    poll_interval: float = 1.0
    collector_paths: Sequence[str] = field(default_factory=tuple)
    plugins: Sequence[str] = field(default_factory=tuple)
    report_format: str = "terminal"
    report_path: Optional[str] = None
    color: bool = True


def load_settings(
    path: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> HarnessSettings:
    """Build settings from a YAML file (explicit, or ``collectortest.yaml`` in ``cwd``) and the environment."""

    environ = os.environ if environ is None else environ
    settings = HarnessSettings()
    settings_path = Path(path) if path else (cwd or Path.cwd()) / DEFAULT_SETTINGS_FILE
    if path or settings_path.is_file():
        settings = _apply_file(settings, settings_path)
    return _apply_env(settings, environ)


def _apply_file(settings: HarnessSettings, path: Path) -> HarnessSettings:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ValueError(f"Unable to read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Settings file {path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ValueError(f"Settings file {path} must contain a mapping at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise ValueError(f"Settings validation failed for {path}: {messages}")
    report: Mapping[str, Any] = raw.get("report") or {}
    base = path.parent
    return replace(
        settings,
        plan_file=raw.get("plan_file", settings.plan_file),
        poll_interval=float(raw.get("poll_interval", settings.poll_interval)),
        collector_paths=tuple(str((base / p).resolve()) for p in raw.get("collector_paths", ())),
        plugins=tuple(raw.get("plugins", ())),
        report_format=report.get("format", settings.report_format),
        report_path=report.get("path", settings.report_path),
        color=bool(report.get("color", settings.color)),
    )


def _apply_env(settings: HarnessSettings, environ: Mapping[str, str]) -> HarnessSettings:
    updates: dict[str, Any] = {}
    plan_file = environ.get(ENV_PLAN)
    if plan_file:
        updates["plan_file"] = plan_file
    poll_interval = environ.get(ENV_POLL_INTERVAL)
    if poll_interval:
        try:
            value = float(poll_interval)
        except ValueError as exc:
            raise ValueError(f"{ENV_POLL_INTERVAL} must be a number, got '{poll_interval}'") from exc
        if value <= 0:
            raise ValueError(f"{ENV_POLL_INTERVAL} must be positive, got {value}")
        updates["poll_interval"] = value
    collector_path = environ.get(ENV_COLLECTOR_PATH)
    if collector_path:
        extra = tuple(part for part in collector_path.split(os.pathsep) if part)
        updates["collector_paths"] = tuple(settings.collector_paths) + extra
    return replace(settings, **updates) if updates else settings
