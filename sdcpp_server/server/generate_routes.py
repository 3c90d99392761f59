"""FastAPI route handler for OpenAI-style image generation."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Header, Request
from pydantic import ValidationError

from sdcpp_server.server.auth import verify_bearer_token
from sdcpp_server.server.command import build_args, output_path
from sdcpp_server.server.errors import BadRequest
from sdcpp_server.server.materialize import materialize
from sdcpp_server.server.models import ErrorResponse, GenerationRequest, GenerationResponse
from sdcpp_server.server.process import run_generator

if TYPE_CHECKING:
    from sdcpp_server.config import Settings
    from sdcpp_server.server.process import GenerationLimiter

logger = logging.getLogger(__name__)


def _format_validation_error(e: ValidationError) -> str:
    """One line per field: ``prompt: Field required``."""
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{loc}: {err['msg']}")
    return "Invalid request body: " + "; ".join(parts)


async def _parse_request(request: Request) -> GenerationRequest:
    """Decode and validate the JSON body."""
    raw = await request.body()
    try:
        payload: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f"Request body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        return GenerationRequest.model_validate(payload)
    except ValidationError as e:
        raise BadRequest(_format_validation_error(e)) from e


def create_generate_router(settings: Settings, limiter: GenerationLimiter) -> APIRouter:
    """Build a router with ``POST /v1/images/generations``."""
    router = APIRouter(prefix="/v1", tags=["generate"])

    @router.post(
        "/images/generations",
        response_model=GenerationResponse,
        responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        openapi_extra={
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": GenerationRequest.model_json_schema()}},
            }
        },
    )
    async def generate(
        request: Request,
        authorization: Annotated[str | None, Header()] = None,
    ) -> GenerationResponse:
        """Run sd for one prompt and return the PNG as base64."""
        created = int(time.time())
        # Credentials are checked before the body is touched
        verify_bearer_token(authorization, settings.token)
        req = await _parse_request(request)

        output = output_path(settings.cache_dir, created)
        args = build_args(req, settings, output)

        async with limiter.slot():
            await run_generator(settings.binary_path, args)
        result = await materialize(output, created)
        logger.info("generated image model=%s steps=%d", req.model, req.steps)
        return result

    return router
