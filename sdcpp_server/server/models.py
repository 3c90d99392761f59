"""Pydantic models for the image generation API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SIZE = "512x512"
DEFAULT_STEPS = 20
DEFAULT_CFG_SCALE = 7.0
RANDOM_SEED = -1

UINT32_MAX = 2**32 - 1
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

ErrorType = Literal["invalid_request_error", "server_error"]


class GenerationRequest(BaseModel):
    """Request body for ``POST /v1/images/generations``."""

    # OpenAI clients send extra keys (n, response_format, ...)
    model_config = ConfigDict(extra="ignore")

    prompt: str = Field(min_length=1)
    model: str
    size: str = DEFAULT_SIZE
    negative_prompt: str | None = None
    steps: int = Field(default=DEFAULT_STEPS, ge=0, le=UINT32_MAX)
    cfg_scale: float = DEFAULT_CFG_SCALE
    seed: int = Field(default=RANDOM_SEED, ge=INT32_MIN, le=INT32_MAX)


class ImageData(BaseModel):
    b64_json: str


class GenerationResponse(BaseModel):
    created: int
    data: list[ImageData]


class ErrorDetail(BaseModel):
    message: str
    type: ErrorType


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: int
