"""JSON Schema validation for replay recordings and published race events.

Thin wrapper over jsonschema; schemas are keyed by record subject.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

import jsonschema

_NUMBER_OR_NULL = {"type": ["number", "null"]}

SCHEMAS: Dict[str, Dict[str, Any]] = {
    "telemetry.tick": {
        "type": "object",
        "required": ["type", "id"],
        "properties": {
            "type": {"const": "tick"},
            "id": {"type": "integer", "minimum": 0},
            "time": _NUMBER_OR_NULL,
            "best": {"type": "array", "maxItems": 4, "items": _NUMBER_OR_NULL},
            "overall_best": _NUMBER_OR_NULL,
            "last_lap": _NUMBER_OR_NULL,
            "laps": {"type": "integer", "minimum": 0},
            "fuel": {"type": ["integer", "null"]},
            "pit": {"type": "boolean"},
            "finished": {"type": "boolean"},
            "delay": {"type": "number", "minimum": 0},
        },
    },
    "telemetry.start": {
        "type": "object",
        "required": ["type", "value"],
        "properties": {
            "type": {"const": "start"},
            "value": {"type": "integer", "minimum": 0},
            "delay": {"type": "number", "minimum": 0},
        },
    },
    "telemetry.lap": {
        "type": "object",
        "required": ["type", "lap"],
        "properties": {
            "type": {"const": "lap"},
            "lap": {"type": "integer", "minimum": 0},
            "delay": {"type": "number", "minimum": 0},
        },
    },
    "telemetry.yellow": {
        "type": "object",
        "required": ["type", "active"],
        "properties": {
            "type": {"const": "yellow"},
            "active": {"type": "boolean"},
            "delay": {"type": "number", "minimum": 0},
        },
    },
    "telemetry.finished": {
        "type": "object",
        "required": ["type", "finished"],
        "properties": {
            "type": {"const": "finished"},
            "finished": {"type": "boolean"},
            "delay": {"type": "number", "minimum": 0},
        },
    },
    "race.event": {
        "type": "object",
        "required": ["type", "key", "kind", "timestamp"],
        "properties": {
            "type": {"const": "race_event"},
            "key": {"type": "string"},
            "kind": {"type": "string"},
            "driver_id": {"type": ["integer", "null"]},
            "driver": {"type": ["string", "null"]},
            "value": {"type": ["integer", "null"]},
            "timestamp": {"type": "number"},
        },
    },
}


@lru_cache(maxsize=16)
def _validator(subject: str) -> jsonschema.Draft202012Validator:
    schema = SCHEMAS.get(subject)
    if schema is None:
        raise ValueError(f"No schema registered for subject {subject}")
    return jsonschema.Draft202012Validator(schema)


def validate(subject: str, payload: Dict[str, Any]) -> None:
    """Validate payload against the subject schema.

    Raises jsonschema.ValidationError on failure.
    """
    _validator(subject).validate(payload)


def is_valid(subject: str, payload: Dict[str, Any]) -> bool:
    try:
        validate(subject, payload)
        return True
    except (jsonschema.ValidationError, ValueError):
        return False
