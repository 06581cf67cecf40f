"""Core functionality for the generation gateway.

- **GatewayConfig / config**: configuration using Pydantic Settings
- **TemporaryAssetHandle**: ownership and disposal of uploaded files
- **ContentPartBuilder**: uploaded bytes to base64 media parts
- **GenerationBackend / GeminiBackend**: the generation collaborator
- **RequestPipeline**: validation, part building, backend call, cleanup

Architecture Overview
---------------------
1. **Configuration Layer** (config.py): ``MEDIAGATE_*`` environment settings.
2. **Asset Layer** (assets.py, content.py): temporary uploads and the parts
   built from them.
3. **Backend Layer** (backend.py): the ``google-genai`` adapter behind an
   abstract interface.
4. **Orchestration Layer** (pipeline.py): one invocation per request.

Usage Example
-------------
    from mediagate.core import RequestPipeline, create_backend, config
    from mediagate.core.pipeline import IMAGE_ENDPOINT, PipelineRequest

    pipeline = RequestPipeline(create_backend(config))
    outcome = await pipeline.run(
        PipelineRequest(IMAGE_ENDPOINT, prompt=None, asset=handle, mime_type="image/png")
    )
"""

from mediagate.core.assets import FileAssetHandle, MemoryAssetHandle, TemporaryAssetHandle
from mediagate.core.backend import (
    GeminiBackend,
    GenerationBackend,
    GenerationFailed,
    GenerationOk,
    create_backend,
)
from mediagate.core.config import GatewayConfig, config
from mediagate.core.content import ContentPartBuilder, MediaPart, TextPart
from mediagate.core.exceptions import AssetUnavailable, BackendFailure, MediagateError
from mediagate.core.pipeline import PipelineOutcome, PipelineRequest, RequestPipeline

__all__ = [
    "AssetUnavailable",
    "BackendFailure",
    "ContentPartBuilder",
    "FileAssetHandle",
    "GatewayConfig",
    "GeminiBackend",
    "GenerationBackend",
    "GenerationFailed",
    "GenerationOk",
    "MediaPart",
    "MediagateError",
    "MemoryAssetHandle",
    "PipelineOutcome",
    "PipelineRequest",
    "RequestPipeline",
    "TemporaryAssetHandle",
    "TextPart",
    "config",
    "create_backend",
]
