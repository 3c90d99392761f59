"""API error types and the handler that renders them as JSON envelopes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse

from sdcpp_server.server.models import ErrorDetail, ErrorResponse

if TYPE_CHECKING:
    from fastapi import Request

    from sdcpp_server.server.models import ErrorType

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for failures that map to one JSON error response."""

    status_code = 500
    error_type: ErrorType = "server_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> JSONResponse:
        body = ErrorResponse(error=ErrorDetail(message=self.message, type=self.error_type))
        return JSONResponse(body.model_dump(), status_code=self.status_code)


class Unauthorized(ApiError):
    status_code = 401
    error_type: ErrorType = "invalid_request_error"


class BadRequest(ApiError):
    status_code = 400
    error_type: ErrorType = "invalid_request_error"


class ServerError(ApiError):
    status_code = 500
    error_type: ErrorType = "server_error"


async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError raised anywhere in a route."""
    if exc.status_code >= 500:  # noqa: PLR2004
        logger.error("request failed: %s", exc.message)
    return exc.to_response()
