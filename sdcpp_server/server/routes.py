"""FastAPI route handlers for service health."""

from __future__ import annotations

import time

from fastapi import APIRouter

from sdcpp_server.server.models import HealthResponse


def create_router() -> APIRouter:
    """Build a router with ``GET /health``."""
    router = APIRouter()

    @router.get("/health")
    def health() -> HealthResponse:
        # Liveness only: the sd binary is not probed
        return HealthResponse(timestamp=int(time.time()))

    return router
