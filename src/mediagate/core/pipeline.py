"""Request pipeline: from one inbound request to one generation outcome.

This module provides :class:`RequestPipeline`, the single place where an
inbound request is validated, turned into content parts, sent to the
generation backend and mapped to a response.  It also owns the lifetime of
the uploaded asset: whatever happens, the asset is disposed of exactly once,
after the backend call has resolved.

Invocation Lifecycle
--------------------
Each call to :meth:`RequestPipeline.run` moves through::

    IDLE -> VALIDATING -> BUILDING_PARTS -> AWAITING_BACKEND -> FINALIZING -> DONE

Validation and build failures jump straight to ``FINALIZING``.  The states
visited are recorded on the returned :class:`PipelineOutcome`.

Endpoints
---------
========  ============  ===========================
Name      Asset field   Default prompt
========  ============  ===========================
text      (none)        (none, prompt passed as-is)
image     ``image``     Describe this image
document  ``document``  Summarize this document
audio     ``audio``     Transcribe this audio
========  ============  ===========================

Concurrency
-----------
The pipeline keeps no per-request state on ``self``; one instance serves
every concurrent request.  Reading and encoding the upload runs in a worker
thread through ``asyncio.to_thread``; the backend call is the other await
point.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field

from mediagate.core.assets import TemporaryAssetHandle
from mediagate.core.backend import GenerationBackend, GenerationFailed, GenerationOk
from mediagate.core.content import ContentPart, ContentPartBuilder, TextPart
from mediagate.core.exceptions import AssetUnavailable, BackendFailure

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Endpoint definitions.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EndpointSpec:
    """Static description of one generation endpoint.

    Attributes:
        name: Short endpoint name used in logs.
        asset_field: Multipart field carrying the upload, or ``None``.
        default_prompt: Prompt used when the caller sent none.  ``None``
            disables substitution.
        requires_asset: Whether a missing upload is a client error.
    """

    name: str
    asset_field: str | None = None
    default_prompt: str | None = None
    requires_asset: bool = False

    @property
    def missing_input_message(self) -> str:
        return f"No {self.asset_field or self.name} file uploaded."

    def resolve_prompt(self, prompt: str | None) -> str:
        """Return the caller's prompt, or the default when it is empty."""
        if prompt:
            return prompt
        if self.default_prompt is not None:
            return self.default_prompt
        return ""


TEXT_ENDPOINT = EndpointSpec(name="text")
IMAGE_ENDPOINT = EndpointSpec(
    name="image",
    asset_field="image",
    default_prompt="Describe this image",
    requires_asset=True,
)
DOCUMENT_ENDPOINT = EndpointSpec(
    name="document",
    asset_field="document",
    default_prompt="Summarize this document",
    requires_asset=True,
)
AUDIO_ENDPOINT = EndpointSpec(
    name="audio",
    asset_field="audio",
    default_prompt="Transcribe this audio",
    requires_asset=True,
)

MEDIA_ENDPOINTS: dict[str, EndpointSpec] = {
    spec.asset_field: spec for spec in (IMAGE_ENDPOINT, DOCUMENT_ENDPOINT, AUDIO_ENDPOINT)
}


# ---------------------------------------------------------------------------
# Requests and outcomes.
# ---------------------------------------------------------------------------


@dataclass
class PipelineRequest:
    """Parsed input for one invocation.

    The pipeline takes exclusive ownership of ``asset`` and disposes of it
    before :meth:`RequestPipeline.run` returns.
    """

    endpoint: EndpointSpec
    prompt: str | None = None
    asset: TemporaryAssetHandle | None = None
    mime_type: str | None = None


class PipelineState(enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING_PARTS = "building_parts"
    AWAITING_BACKEND = "awaiting_backend"
    FINALIZING = "finalizing"
    DONE = "done"


class OutcomeKind(enum.Enum):
    OK = "ok"
    MISSING_INPUT = "missing_input"
    BUILD_FAILED = "build_failed"
    BACKEND_FAILED = "backend_failed"


_STATUS_CODES = {
    OutcomeKind.OK: 200,
    OutcomeKind.MISSING_INPUT: 400,
    OutcomeKind.BUILD_FAILED: 500,
    OutcomeKind.BACKEND_FAILED: 500,
}


@dataclass
class PipelineOutcome:
    """Result of one invocation, ready to be relayed over HTTP.

    Attributes:
        kind: Which branch the invocation ended in.
        text: Generated text (``OK`` only).
        message: Error message (every other kind).
        parts: Content parts sent to the backend, empty if none were built.
        states: States visited, in order.
    """

    kind: OutcomeKind
    text: str | None = None
    message: str | None = None
    parts: list[ContentPart] = field(default_factory=list)
    states: list[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    def to_payload(self) -> dict[str, str]:
        if self.ok:
            return {"text": self.text or ""}
        return {"error": self.message or ""}


# ---------------------------------------------------------------------------
# Pipeline.
# ---------------------------------------------------------------------------


class RequestPipeline:
    """Orchestrates validation, part building, the backend call and cleanup.

    Attributes:
        backend: Generation backend, injected by the application.
        builder: Builder used for media parts.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        builder: ContentPartBuilder | None = None,
    ) -> None:
        self.backend = backend
        self.builder = builder or ContentPartBuilder()

    async def run(self, request: PipelineRequest) -> PipelineOutcome:
        """Handle one request end to end.

        The asset, when present, is disposed of exactly once on every path,
        including when the backend raises an unexpected exception (which then
        propagates).  A disposal problem never changes the outcome.

        Args:
            request: Parsed request.  Ownership of its asset moves here.

        Returns:
            The outcome for the HTTP layer.
        """
        states = [PipelineState.IDLE]
        endpoint = request.endpoint
        logger.info("Pipeline invocation started (endpoint=%s).", endpoint.name)

        # No handle means nothing to clean up.
        guard = request.asset if request.asset is not None else nullcontext()
        try:
            with guard:
                outcome = await self._execute(request, states)
                states.append(PipelineState.FINALIZING)
        except Exception:
            if states[-1] is not PipelineState.FINALIZING:
                states.append(PipelineState.FINALIZING)
            logger.exception("Pipeline invocation failed (endpoint=%s).", endpoint.name)
            raise

        states.append(PipelineState.DONE)
        outcome.states = states

        if outcome.ok:
            logger.info("Pipeline invocation succeeded (endpoint=%s).", endpoint.name)
        else:
            logger.warning(
                "Pipeline invocation ended with %s (endpoint=%s): %s",
                outcome.kind.value,
                endpoint.name,
                outcome.message,
            )
        return outcome

    async def _execute(
        self,
        request: PipelineRequest,
        states: list[PipelineState],
    ) -> PipelineOutcome:
        endpoint = request.endpoint

        # --- Validate ------------------------------------------------------
        states.append(PipelineState.VALIDATING)
        if endpoint.requires_asset and request.asset is None:
            return PipelineOutcome(
                kind=OutcomeKind.MISSING_INPUT,
                message=endpoint.missing_input_message,
            )

        # --- Build parts ---------------------------------------------------
        # Prompt first, then the media part.  The read happens off the loop.
        states.append(PipelineState.BUILDING_PARTS)
        parts: list[ContentPart] = [TextPart(endpoint.resolve_prompt(request.prompt))]
        if request.asset is not None and endpoint.asset_field is not None:
            try:
                parts.append(
                    await asyncio.to_thread(
                        self.builder.build,
                        request.asset,
                        request.mime_type or "application/octet-stream",
                    )
                )
            except AssetUnavailable as exc:
                return PipelineOutcome(
                    kind=OutcomeKind.BUILD_FAILED,
                    message=str(exc),
                    parts=parts,
                )

        # --- Invoke backend ------------------------------------------------
        states.append(PipelineState.AWAITING_BACKEND)
        try:
            result = await self.backend.generate(parts)
        except BackendFailure as exc:
            result = GenerationFailed(message=exc.message)

        # --- Map outcome ---------------------------------------------------
        if isinstance(result, GenerationOk):
            return PipelineOutcome(kind=OutcomeKind.OK, text=result.text, parts=parts)
        return PipelineOutcome(
            kind=OutcomeKind.BACKEND_FAILED,
            message=result.message,
            parts=parts,
        )
