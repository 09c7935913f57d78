"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

_CHECK = {
    "type": "object",
    "required": ["name", "status", "duration_ms", "details"],
    "properties": {
        "name": {"type": "string"},
        "status": {"enum": ["passed", "failed", "skipped"]},
        "duration_ms": {"type": "number"},
        "details": {"type": "string"},
    },
}

_LOAD_TEST = {
    "type": "object",
    "required": [
        "index",
        "collection",
        "entity",
        "sample_size",
        "max_memory_mb",
        "max_run_time_sec",
        "status",
        "duration_s",
    ],
    "properties": {
        "index": {"type": "integer", "minimum": 0},
        "collection": {"type": "string"},
        "entity": {"type": "string"},
        "sample_size": {"type": "integer", "minimum": 0},
        "max_memory_mb": {"type": "integer", "minimum": 0},
        "max_run_time_sec": {"type": "integer", "minimum": 0},
        "status": {"enum": ["passed", "failed"]},
        "duration_s": {"type": "number"},
        "peak_memory_mb": {"type": ["integer", "null"]},
        "exit_code": {"type": ["integer", "null"]},
        "details": {"type": "string"},
    },
}

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "collectortest report",
    "type": "object",
    "required": ["schema_version", "generated_at", "collector", "passed", "checks", "load_tests"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "collector": {"type": "string"},
        "plan": {"type": ["string", "null"]},
        "passed": {"type": "boolean"},
        "error": {"type": ["string", "null"]},
        "checks": {"type": "array", "items": _CHECK},
        "load_tests": {"type": "array", "items": _LOAD_TEST},
    },
}
