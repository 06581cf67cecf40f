"""Mediagate - FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, the generation routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
Route handlers are thin: they parse the request, let the upload layer store
any file, and hand a :class:`~mediagate.core.pipeline.PipelineRequest` to the
:class:`~mediagate.core.pipeline.RequestPipeline` held on ``app.state``.  The
pipeline owns the uploaded file from then on and removes it once the backend
call has resolved.

The generation backend is built in the lifespan hook, or injected through
:func:`create_app` (tests pass a fake backend this way).

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/health``                   Liveness probe
POST      ``/generate-text``            Generate from a JSON prompt
POST      ``/generate-from-image``      Generate from an uploaded image
POST      ``/generate-from-document``   Generate from an uploaded document
POST      ``/generate-from-audio``      Generate from an uploaded audio file
========  ============================  ====================================

Every generation route answers ``200 {"text": ...}`` on success,
``400 {"error": ...}`` when a required file is missing, and
``500 {"error": ...}`` for any other failure.

Usage
-----
CLI (installed entry point)::

    mediagate

Direct invocation::

    python -m mediagate.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mediagate import __version__
from mediagate.api.models import (
    ErrorResponse,
    GenerationResponse,
    HealthResponse,
    TextGenerateRequest,
)
from mediagate.api.uploads import store_upload
from mediagate.core.backend import GenerationBackend, create_backend
from mediagate.core.config import GatewayConfig, config
from mediagate.core.pipeline import (
    AUDIO_ENDPOINT,
    DOCUMENT_ENDPOINT,
    IMAGE_ENDPOINT,
    TEXT_ENDPOINT,
    EndpointSpec,
    PipelineRequest,
    RequestPipeline,
)

logger = logging.getLogger(__name__)

_RESPONSES = {
    200: {"model": GenerationResponse},
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

_ENDPOINTS_BY_PATH: dict[str, EndpointSpec] = {
    "/generate-text": TEXT_ENDPOINT,
    "/generate-from-image": IMAGE_ENDPOINT,
    "/generate-from-document": DOCUMENT_ENDPOINT,
    "/generate-from-audio": AUDIO_ENDPOINT,
}


# ---------------------------------------------------------------------------
# Request helpers.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation_errors(exc: RequestValidationError) -> str:
    """Flatten FastAPI validation errors into one ``field: message`` string."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in tuple(err.get("loc", ()))[1:]) or "body"
        messages.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "; ".join(messages) or "Invalid request."


def _is_asset_field_error(exc: RequestValidationError, endpoint: EndpointSpec) -> bool:
    if endpoint.asset_field is None:
        return False
    return any(tuple(err.get("loc", ()))[-1:] == (endpoint.asset_field,) for err in exc.errors())


async def _relay(request: Request, pipeline_request: PipelineRequest) -> JSONResponse:
    """Run the pipeline and turn its outcome into a JSON response.

    Exceptions the pipeline does not classify (it has already cleaned up and
    logged them) become a 500 carrying the exception message.
    """
    pipeline: RequestPipeline = request.app.state.pipeline
    try:
        outcome = await pipeline.run(pipeline_request)
    except Exception as exc:
        return _error(500, str(exc) or type(exc).__name__)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_payload())


async def _generate_from_upload(
    request: Request,
    endpoint: EndpointSpec,
    upload: UploadFile | None,
    prompt: str | None,
) -> JSONResponse:
    """Store the upload, if any, and run the pipeline for a media endpoint."""
    gateway_config: GatewayConfig = request.app.state.config
    try:
        stored = await store_upload(upload, gateway_config.uploads_dir)
    except Exception as exc:
        logger.exception("Failed to store %s upload.", endpoint.name)
        return _error(500, str(exc) or type(exc).__name__)

    return await _relay(
        request,
        PipelineRequest(
            endpoint=endpoint,
            prompt=prompt,
            asset=stored.asset if stored else None,
            mime_type=stored.mime_type if stored else None,
        ),
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    gateway_config: GatewayConfig | None = None,
    backend: GenerationBackend | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        gateway_config: Configuration to use.  Defaults to the global
            :data:`~mediagate.core.config.config`.
        backend: Generation backend to inject.  When ``None`` the lifespan
            builds a :class:`~mediagate.core.backend.GeminiBackend` from the
            configuration.

    Returns:
        The configured application.
    """
    gateway_config = gateway_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the pipeline on startup.

        The Gemini client itself is only created on the first generation
        request, so the server starts without an API key and a missing key
        is reported per request as ``500 {"error": ...}``.
        """
        gateway_config.uploads_dir.mkdir(parents=True, exist_ok=True)
        app.state.config = gateway_config
        app.state.pipeline = RequestPipeline(backend or create_backend(gateway_config))
        logger.info(
            "RequestPipeline initialised (model=%s, uploads=%s).",
            gateway_config.model_name,
            gateway_config.uploads_dir,
        )

        yield

        logger.info("Gateway shutting down.")

    app = FastAPI(
        title="Mediagate",
        description="Generate text from prompts, images, documents and audio.",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Answer malformed generation requests with an ``{error}`` body.

        A media field holding something other than a file counts as no file
        (400).  Any other invalid input on a generation route is a 500.
        Routes outside the generation API keep FastAPI's default 422.
        """
        endpoint = _ENDPOINTS_BY_PATH.get(request.url.path)
        if endpoint is None:
            return await request_validation_exception_handler(request, exc)

        if _is_asset_field_error(exc, endpoint):
            logger.warning(
                "Rejected %s request: field '%s' is not a file.",
                endpoint.name,
                endpoint.asset_field,
            )
            return _error(400, endpoint.missing_input_message)

        message = _describe_validation_errors(exc)
        logger.warning("Rejected %s request: %s", endpoint.name, message)
        return _error(500, message)

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Report that the server is up and which model it talks to."""
        return HealthResponse(version=__version__, model=gateway_config.model_name)

    @app.post("/generate-text", responses=_RESPONSES)
    async def generate_text(request: Request, body: TextGenerateRequest) -> JSONResponse:
        """Generate text from a prompt.

        The prompt is forwarded unchanged; no default is substituted.
        """
        return await _relay(request, PipelineRequest(endpoint=TEXT_ENDPOINT, prompt=body.prompt))

    @app.post("/generate-from-image", responses=_RESPONSES)
    async def generate_from_image(
        request: Request,
        image: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> JSONResponse:
        """Generate text about an uploaded image (default: describe it)."""
        return await _generate_from_upload(request, IMAGE_ENDPOINT, image, prompt)

    @app.post("/generate-from-document", responses=_RESPONSES)
    async def generate_from_document(
        request: Request,
        document: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> JSONResponse:
        """Generate text about an uploaded document (default: summarize it)."""
        return await _generate_from_upload(request, DOCUMENT_ENDPOINT, document, prompt)

    @app.post("/generate-from-audio", responses=_RESPONSES)
    async def generate_from_audio(
        request: Request,
        audio: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> JSONResponse:
        """Generate text about an uploaded audio file (default: transcribe it)."""
        return await _generate_from_upload(request, AUDIO_ENDPOINT, audio, prompt)

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~mediagate.core.config.config` (which
    loads from ``MEDIAGATE_SERVER_HOST`` and ``MEDIAGATE_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:3000``.

    This function is registered as the ``mediagate`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Server is running on http://%s:%d", config.server_host, config.server_port)

    uvicorn.run(
        "mediagate.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
