"""sd HTTP facade: FastAPI app exposing OpenAI-style image generation."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from sdcpp_server.config import Settings, load_settings
from sdcpp_server.server.errors import ApiError, api_error_handler
from sdcpp_server.server.generate_routes import create_generate_router
from sdcpp_server.server.process import GenerationLimiter
from sdcpp_server.server.routes import create_router

__all__ = ["Settings", "create_app"]

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Settings are read from the environment when not given, so
    ``uvicorn --factory sdcpp_server.server:create_app`` works directly.
    """
    if settings is None:
        settings = load_settings()

    limiter = GenerationLimiter(settings.max_concurrent)
    if settings.max_concurrent is None:
        logger.info("no limit on concurrent sd processes")
    else:
        logger.info("at most %d concurrent sd processes", settings.max_concurrent)

    app = FastAPI(title="sd-cpp-server")
    app.add_exception_handler(ApiError, api_error_handler)
    app.include_router(create_generate_router(settings, limiter))
    app.include_router(create_router())
    app.state.settings = settings
    app.state.limiter = limiter
    return app
