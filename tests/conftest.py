"""Shared pytest fixtures for Mediagate tests."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mediagate.api.main import create_app
from mediagate.core.backend import GenerationBackend, GenerationOk, GenerationResult
from mediagate.core.config import GatewayConfig
from mediagate.core.content import ContentPart
from mediagate.core.pipeline import RequestPipeline


class FakeBackend(GenerationBackend):
    """In-process backend recording every call.

    Attributes:
        result: Value returned by :meth:`generate`.
        error: If set, raised by :meth:`generate` instead of returning.
        on_call: Optional hook run with the parts before returning.
        calls: Parts received, one list per call.
    """

    def __init__(
        self,
        result: GenerationResult | None = None,
        error: Exception | None = None,
        on_call: Callable[[Sequence[ContentPart]], None] | None = None,
    ) -> None:
        self.result = result or GenerationOk(text="Hi there")
        self.error = error
        self.on_call = on_call
        self.calls: list[list[ContentPart]] = []

    async def generate(self, parts: Sequence[ContentPart]) -> GenerationResult:
        self.calls.append(list(parts))
        if self.on_call is not None:
            self.on_call(parts)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> GatewayConfig:
    """Create a test configuration with a temporary uploads directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        GatewayConfig instance for testing
    """
    return GatewayConfig(
        _env_file=None,
        gemini_api_key="test-key",
        model_name="gemini-test",
        uploads_dir=str(temp_dir / "uploads"),
    )


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    """Factory for backends with custom results, errors or call hooks."""
    return FakeBackend


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Backend answering ``Hi there`` to every request."""
    return FakeBackend()


@pytest.fixture
def pipeline(fake_backend: FakeBackend) -> RequestPipeline:
    """Pipeline wired to the fake backend."""
    return RequestPipeline(fake_backend)


@pytest.fixture
def sample_file(temp_dir: Path) -> Path:
    """Write a small binary file standing in for an upload.

    Returns:
        Path to the file
    """
    path = temp_dir / "sample.bin"
    path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01binary-payload\xff")
    return path


@pytest.fixture
def test_client(
    test_config: GatewayConfig,
    fake_backend: FakeBackend,
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient around an app using the fake backend.

    The ``with`` block runs the lifespan hook so ``app.state.pipeline`` is
    populated.
    """
    app = create_app(test_config, backend=fake_backend)
    with TestClient(app) as client:
        yield client
