"""JSON Schema validation helpers for the documents spmbridge consumes.

Wraps jsonschema Draft-7 validation and defines ``SchemaError``, the single
error type raised whenever an input document does not have the shape the
merger or the dependency index expects.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator


class SchemaError(ValueError):
    """Raised when data fails to validate against a provided schema."""


_LABEL_LIST = {"type": "array", "items": {"type": "string"}}

DEPS_INDEX_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["modules", "products"],
    "properties": {
        "modules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "c99name", "label"],
                "properties": {
                    "name": {"type": "string"},
                    "c99name": {"type": "string"},
                    "src_type": {"type": "string"},
                    "label": {"type": "string"},
                },
            },
        },
        "products": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["identity", "name", "type", "target_labels"],
                "properties": {
                    "identity": {"type": "string"},
                    "name": {"type": "string"},
                    "type": {"type": "string"},
                    "target_labels": _LABEL_LIST,
                },
            },
        },
    },
}


def validate_input(schema: Dict[str, Any], data: Any, what: str = "input") -> None:
    """Validate ``data`` strictly and raise on the first error.

    Args:
        schema: Draft-07 JSON Schema dict.
        data:   Decoded JSON payload to validate.
        what:   Name of the document, used in the error message.
    """
    validator = Draft7Validator(schema)
    errs = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        msg = f"Invalid {what} at '{path}': {first.message}"
        raise SchemaError(msg)
