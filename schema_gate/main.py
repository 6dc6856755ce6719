"""
FastAPI application entrypoint.

Run locally:  uvicorn schema_gate.main:app --reload
"""

import logging

from fastapi import FastAPI

from schema_gate.api.routes import router
from schema_gate.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)

app = FastAPI(
    title="Schema Gate",
    description="Validates JSON data against a JSON Schema and reports structured errors.",
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")
