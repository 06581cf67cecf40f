"""Exception types raised inside the generation pipeline.

Only these exceptions are translated into pipeline outcomes.  Anything else a
backend raises propagates to the HTTP layer after cleanup has run.
"""

from __future__ import annotations


class MediagateError(Exception):
    """Base class for all gateway errors."""


class AssetUnavailable(MediagateError):
    """The bytes behind a temporary asset could not be read.

    Raised when the backing file has vanished or the handle was already
    disposed before the content part was built.
    """

    def __init__(self, location: str, reason: str | None = None) -> None:
        self.location = location
        self.reason = reason
        message = f"Uploaded asset is no longer available: {location}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class BackendFailure(MediagateError):
    """The generation backend rejected or could not complete a request.

    The message is the backend's own text and is passed through to the client
    verbatim.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
