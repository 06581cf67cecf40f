"""Temporary asset handles for uploaded media.

An uploaded file lives only as long as the request that carried it.  The
upload layer creates a handle, the pipeline owns it for the duration of one
invocation and disposes of it on every exit path.

Disposal is idempotent and never raises: a resource that is already gone is a
no-op, and any other failure is logged and swallowed because the request
outcome has already been decided by the time cleanup runs.

Handles are context managers, so the pipeline body reads as::

    with asset:
        part = builder.build(asset, mime_type)
        result = await backend.generate([...])
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from mediagate.core.exceptions import AssetUnavailable

logger = logging.getLogger(__name__)


class TemporaryAssetHandle(ABC):
    """Exclusive ownership of one transient stored payload.

    Subclasses implement :meth:`_read` and :meth:`_release`; this base class
    provides the disposal bookkeeping shared by every storage kind.

    Attributes:
        location: Opaque identifier of the backing resource (a path for
            on-disk assets).
        disposed: ``True`` once :meth:`dispose` has run.
    """

    def __init__(self, location: str) -> None:
        self.location = location
        self.disposed = False

    # -- Public interface ---------------------------------------------------

    def read_bytes(self) -> bytes:
        """Return the full content of the asset.

        Raises:
            AssetUnavailable: If the handle was disposed or the backing
                resource no longer exists.
        """
        if self.disposed:
            raise AssetUnavailable(self.location, "already disposed")
        return self._read()

    def dispose(self) -> None:
        """Release the backing resource.

        Safe to call any number of times.  Only the first call does work.
        """
        if self.disposed:
            return
        self.disposed = True

        try:
            self._release()
        except FileNotFoundError:
            logger.debug("Asset '%s' was already removed.", self.location)
        except Exception:
            logger.warning("Failed to dispose of asset '%s'.", self.location, exc_info=True)
        else:
            logger.debug("Disposed of asset '%s'.", self.location)

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> TemporaryAssetHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(location={self.location!r}, disposed={self.disposed})"

    # -- Storage hooks ------------------------------------------------------

    @abstractmethod
    def _read(self) -> bytes:
        """Read the raw bytes from the backing resource."""

    @abstractmethod
    def _release(self) -> None:
        """Remove the backing resource."""


class FileAssetHandle(TemporaryAssetHandle):
    """An upload stored as a file on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(str(self.path))

    def _read(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError as exc:
            raise AssetUnavailable(self.location, "file not found") from exc
        except OSError as exc:
            raise AssetUnavailable(self.location, exc.strerror) from exc

    def _release(self) -> None:
        self.path.unlink()


class MemoryAssetHandle(TemporaryAssetHandle):
    """An upload held in memory; disposal drops the buffer."""

    def __init__(self, data: bytes, location: str = "<memory>") -> None:
        super().__init__(location)
        self._data: bytes | None = data

    def _read(self) -> bytes:
        if self._data is None:
            raise AssetUnavailable(self.location, "buffer released")
        return self._data

    def _release(self) -> None:
        self._data = None
