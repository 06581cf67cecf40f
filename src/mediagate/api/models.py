"""Pydantic request and response models for the gateway API.

Models
------
TextGenerateRequest
    Payload for ``POST /generate-text``.
GenerationResponse
    Success body for every generation route.
ErrorResponse
    Failure body for every generation route.
HealthResponse
    Body of ``GET /health``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class TextGenerateRequest(BaseModel):
    """Request body for the ``POST /generate-text`` endpoint.

    Attributes:
        prompt: Prompt text.  Sent to the model as-is; an absent prompt is
            forwarded as an empty string and rejected by the model.
    """

    prompt: str | None = Field(
        default=None,
        description="Prompt text sent to the model unchanged.",
    )


class GenerationResponse(BaseModel):
    text: str = Field(..., description="Text generated by the model.")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable error message.")


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
    version: str
    model: str
