"""
JSON Schema validation service.

One deterministic, side-effect-free operation: check a data value against a
schema and report a verdict plus structured error records. A value that
does not conform is a normal result, never an exception.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jsonschema.exceptions import SchemaError

from schema_gate.schemas.api import ValidationResult
from schema_gate.services.engine import compile_schema

__all__ = ["InputError", "SchemaError", "validate"]


class InputError(ValueError):
    """A required input of the validate operation was not supplied."""


def validate(
    data: Any,
    schema: Any,
    options: Mapping[str, Any] | None = None,
) -> ValidationResult:
    """
    Validate ``data`` against ``schema``.

    ``options`` is forwarded untouched to the engine (``allErrors``,
    ``verbose``, ``validateFormats``, ``formats``, ``validateSchema`` or any
    jsonschema validator keyword). A fresh validator is built per call.

    Raises:
        InputError: ``data`` is None, or ``schema`` is None or empty text.
        SchemaError: the schema is malformed.
    """
    # Only None counts as absent: False, 0, "" and {} are real payloads
    if data is None:
        raise InputError("data is required")
    if schema is None or schema == "":
        raise InputError("schema is required")

    run = compile_schema(schema, options)
    errors = run(data)
    if errors is None:
        return ValidationResult(is_valid=True)
    return ValidationResult(is_valid=False, errors=errors)
