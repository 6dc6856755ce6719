"""Pydantic models for validation results and API request/response bodies."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Validation verdict
# ---------------------------------------------------------------------------

class ErrorRecord(BaseModel):
    """One schema-rule violation, shaped like an ajv error object."""

    model_config = ConfigDict(populate_by_name=True)

    keyword: str
    instance_path: str = Field(..., alias="instancePath")
    schema_path: str = Field(..., alias="schemaPath")
    params: dict[str, Any] = Field(default_factory=dict)
    property_name: str | None = Field(None, alias="propertyName")
    message: str | None = None
    schema_: Any = Field(None, alias="schema")
    parent_schema: Any = Field(None, alias="parentSchema")
    data: Any = None


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    errors: list[ErrorRecord] | None = None

    def to_output(self) -> dict[str, Any]:
        """
        camelCase dict. Fields never assigned are left out; a JSON null
        reported by the engine (e.g. verbose ``data``) is kept.
        """
        return self.model_dump(by_alias=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class ValidateRequest(BaseModel):
    """Inputs of the validate operation. Presence is checked by the service."""

    model_config = ConfigDict(populate_by_name=True)

    data: Any = None
    schema_: Any = Field(None, alias="schema")
    options: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Workflow run
# ---------------------------------------------------------------------------

class TaskSummary(BaseModel):
    status: str
    duration_ms: float | None = None
    error: str | None = None


class WorkflowResult(BaseModel):
    pipeline: str
    status: str
    tasks: dict[str, TaskSummary]
    branch: str | None = None
    result: dict[str, Any] | None = None
    definition: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
