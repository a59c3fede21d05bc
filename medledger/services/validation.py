"""
JSON Schema validation for event payloads.

Collects every error rather than failing on the first one.
"""

from typing import Any

import jsonschema

from medledger.schemas.events import EVENT_SCHEMAS


def validate_against_schema(data: dict[str, Any], schema: dict[str, Any]) -> list[str]:
    """
    Validate a dict against a JSON schema.
    Returns a list of error messages (empty list = valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    return [error.message for error in validator.iter_errors(data)]


def validate_event(name: str, payload: dict[str, Any]) -> list[str]:
    """Validate an event payload against the schema registered for its name."""
    schema = EVENT_SCHEMAS.get(name)
    if schema is None:
        return [f"Unknown event '{name}'"]
    return validate_against_schema(payload, schema)
