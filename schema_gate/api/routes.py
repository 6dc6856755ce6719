"""
FastAPI routes – the HTTP surface of the validate operation.

A non-conforming payload is a normal 200 response with ``isValid: false``.
Missing inputs map to 400 and malformed schemas to 422.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from schema_gate.config import settings
from schema_gate.schemas.api import (
    HealthResponse,
    TaskSummary,
    ValidateRequest,
    WorkflowResult,
)
from schema_gate.services.validation import InputError, SchemaError, validate
from schema_gate.workflow.activity import DEFAULT_RESULT_KEY, build_validation_workflow

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(status="healthy", environment=settings.ENVIRONMENT)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@router.post("/validate")
def validate_payload(request: ValidateRequest) -> dict[str, Any]:
    """Validate ``data`` against ``schema`` and return the verdict."""
    try:
        result = validate(request.data, request.schema_, request.options)
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SchemaError as exc:
        logger.warning("Rejected malformed schema: %s", exc.message)
        raise HTTPException(status_code=422, detail=f"Invalid schema: {exc.message}") from exc
    return result.to_output()


@router.post("/workflows/validate", response_model=WorkflowResult)
def run_validation_workflow(request: ValidateRequest):
    """
    Run the validate-then-branch workflow. Input and schema problems show up
    as a failed ``validate`` step rather than an HTTP error.
    """
    workflow = build_validation_workflow()
    summary = workflow.run(
        initial_context={
            "data": request.data,
            "schema": request.schema_,
            "options": request.options,
        }
    )

    branch = None
    for name in ("on_valid", "on_invalid"):
        branch = workflow.tasks[name].result.get("branch", branch)

    return WorkflowResult(
        pipeline=summary["pipeline"],
        status=summary["status"],
        tasks={name: TaskSummary(**info) for name, info in summary["tasks"].items()},
        branch=branch,
        result=workflow.tasks["validate"].result.get(DEFAULT_RESULT_KEY),
        definition=workflow.to_dict(),
    )
