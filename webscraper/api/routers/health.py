"""Liveness endpoints.

Routes
------
GET /          Plain-text liveness message
GET /health    {"status": "healthy", "service": ..., "timestamp": ...}
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: int


@router.get("/", response_class=PlainTextResponse)
def root(request: Request) -> str:
    return f"{request.app.state.settings.service_name} is up. Happy scraping!"


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> dict[str, Any]:
    """Report that the service is up, with the current unix time."""
    return {
        "status": "healthy",
        "service": request.app.state.settings.service_name,
        "timestamp": int(time.time()),
    }
