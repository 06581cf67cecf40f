"""Generation backends: the collaborator that turns content parts into text.

The pipeline only depends on :class:`GenerationBackend`.  The production
implementation, :class:`GeminiBackend`, calls the Gemini API through the
``google-genai`` SDK; tests substitute a fake.

Failure Contract
----------------
A backend reports failure either by returning :class:`GenerationFailed` or by
raising :class:`~mediagate.core.exceptions.BackendFailure`.  The message is
surfaced to the client verbatim.  Backends do not retry.

Usage
-----
::

    from mediagate.core.backend import create_backend
    from mediagate.core.config import config

    backend = create_backend(config)
    result = await backend.generate([TextPart("Hello")])
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

import httpx
from google import genai
from google.genai import errors, types

from mediagate.core.config import GatewayConfig
from mediagate.core.content import ContentPart, MediaPart, TextPart
from mediagate.core.exceptions import BackendFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOk:
    """Generated text."""

    text: str


@dataclass(frozen=True)
class GenerationFailed:
    """Backend-reported failure."""

    message: str


GenerationResult = GenerationOk | GenerationFailed


class GenerationBackend(ABC):
    """Accepts an ordered list of content parts and returns generated text."""

    @abstractmethod
    async def generate(self, parts: Sequence[ContentPart]) -> GenerationResult:
        """Run one generation request.

        Args:
            parts: Content parts in the order the model should see them.

        Returns:
            :class:`GenerationOk` or :class:`GenerationFailed`.

        Raises:
            BackendFailure: Implementations may raise instead of returning
                :class:`GenerationFailed`.
        """


class GeminiBackend(GenerationBackend):
    """Backend calling ``models.generate_content`` on the Gemini API.

    The ``google-genai`` client is created on first use.  A missing API key
    therefore surfaces as a :class:`BackendFailure` on the first request
    instead of an error at startup.

    Attributes:
        model_name: Model identifier sent with every request.
        api_key: Gemini API key, or ``None`` to let the SDK read its own
            environment variables.
        timeout_ms: Per-request timeout, or ``None`` for the SDK default.
    """

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        timeout_ms: int | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self.model_name = model_name
        self.api_key = api_key
        self.timeout_ms = timeout_ms
        self._client = client

        logger.info("GeminiBackend initialised (model=%s).", self.model_name)

    @property
    def client(self) -> genai.Client:
        """The SDK client, built from ``api_key`` and ``timeout_ms`` on first access.

        Raises:
            BackendFailure: If the SDK rejects the configuration, for example
                because no API key is available.
        """
        if self._client is None:
            http_options = types.HttpOptions(timeout=self.timeout_ms) if self.timeout_ms else None
            try:
                self._client = genai.Client(api_key=self.api_key, http_options=http_options)
            except ValueError as exc:
                raise BackendFailure(str(exc)) from exc
            logger.info("Gemini client created (model=%s).", self.model_name)
        return self._client

    @staticmethod
    def to_sdk_part(part: ContentPart) -> types.Part:
        """Convert a gateway content part into an SDK part."""
        if isinstance(part, TextPart):
            return types.Part.from_text(text=part.value)
        if isinstance(part, MediaPart):
            return types.Part.from_bytes(data=part.decoded(), mime_type=part.mime_type)
        raise TypeError(f"Unsupported content part: {type(part).__name__}")

    async def generate(self, parts: Sequence[ContentPart]) -> GenerationResult:
        contents = [
            types.Content(role="user", parts=[self.to_sdk_part(part) for part in parts]),
        ]

        logger.info(
            "Calling %s with %d part(s) (%d media).",
            self.model_name,
            len(parts),
            sum(1 for part in parts if isinstance(part, MediaPart)),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
            )
        except errors.APIError as exc:
            raise BackendFailure(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise BackendFailure(str(exc) or type(exc).__name__) from exc

        text = response.text
        if text is None:
            feedback = response.prompt_feedback
            if feedback is not None and feedback.block_reason is not None:
                reason = getattr(feedback.block_reason, "value", feedback.block_reason)
                raise BackendFailure(f"Request blocked by the model: {reason}")
            raise BackendFailure("The model returned no text.")

        return GenerationOk(text=text)


def create_backend(config: GatewayConfig) -> GenerationBackend:
    """Build the production backend from configuration."""
    api_key = config.gemini_api_key.get_secret_value() if config.gemini_api_key else None
    return GeminiBackend(
        model_name=config.model_name,
        api_key=api_key,
        timeout_ms=config.request_timeout_ms,
    )
