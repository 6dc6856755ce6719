"""
JSON Schema validation as a workflow step.

The step reads ``data``, ``schema`` and ``options`` from the workflow
context and publishes the verdict under ``result_key`` so later steps can
branch on ``isValid``. Missing inputs and malformed schemas raise, which
the workflow host records as a failed step.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from schema_gate.services.validation import validate
from schema_gate.workflow.dag import DAG, StepFn

logger = logging.getLogger(__name__)

DEFAULT_RESULT_KEY = "jsonSchema"


def validate_json_schema_step(
    data_key: str = "data",
    schema_key: str = "schema",
    options_key: str = "options",
    result_key: str = DEFAULT_RESULT_KEY,
) -> StepFn:
    """Build a step function bound to the given context keys."""

    def step(context: dict[str, Any]) -> dict[str, Any]:
        result = validate(
            context.get(data_key),
            context.get(schema_key),
            context.get(options_key),
        )
        logger.info(
            "Schema validation: %s (%d errors)",
            "valid" if result.is_valid else "invalid",
            len(result.errors or []),
        )
        return {result_key: result.to_output()}

    return step


def is_valid(result_key: str = DEFAULT_RESULT_KEY) -> Callable[[dict[str, Any]], bool]:
    """Branch condition: the validation step reported ``isValid``."""
    return lambda context: bool(context.get(result_key, {}).get("isValid"))


def is_invalid(result_key: str = DEFAULT_RESULT_KEY) -> Callable[[dict[str, Any]], bool]:
    valid = is_valid(result_key)
    return lambda context: not valid(context)


def _record_branch(branch: str) -> StepFn:
    return lambda context: {"branch": branch}


def build_validation_workflow(
    on_valid: StepFn | None = None,
    on_invalid: StepFn | None = None,
    result_key: str = DEFAULT_RESULT_KEY,
) -> DAG:
    """Validate, then run exactly one of the two branches."""
    dag = DAG("validate_json_schema")
    dag.add_task("validate", validate_json_schema_step(result_key=result_key))
    dag.add_task(
        "on_valid",
        on_valid or _record_branch("valid"),
        depends_on=["validate"],
        when=is_valid(result_key),
    )
    dag.add_task(
        "on_invalid",
        on_invalid or _record_branch("invalid"),
        depends_on=["validate"],
        when=is_invalid(result_key),
    )
    return dag
