"""Backend-neutral content parts and the builder that produces media parts.

A generation request is an ordered list of parts.  Text parts carry the prompt
verbatim; media parts carry the uploaded bytes as standard padded base64 along
with the MIME type the client declared.  The declared type is never inferred
or re-validated here.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from mediagate.core.assets import TemporaryAssetHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextPart:
    """Plain prompt text."""

    value: str


@dataclass(frozen=True)
class MediaPart:
    """Base64-encoded media tagged with its declared MIME type."""

    mime_type: str
    encoded_data: str

    def decoded(self) -> bytes:
        """Return the original bytes."""
        return base64.b64decode(self.encoded_data, validate=True)


ContentPart = TextPart | MediaPart


class ContentPartBuilder:
    """Turn a stored upload into a :class:`MediaPart`.

    One builder serves every media endpoint; image, document and audio only
    differ in the MIME type passed in.
    """

    def build(self, asset: TemporaryAssetHandle, mime_type: str) -> MediaPart:
        """Read the whole asset and encode it.

        Args:
            asset: Handle to the uploaded bytes.  Must not be disposed yet.
            mime_type: Declared media type, copied onto the part unchanged.

        Returns:
            The encoded media part.  The same bytes and MIME type always give
            an equal part.

        Raises:
            AssetUnavailable: If the asset can no longer be read.
        """
        data = asset.read_bytes()
        logger.debug("Encoding %d bytes from '%s' as %s.", len(data), asset.location, mime_type)
        return MediaPart(
            mime_type=mime_type,
            encoded_data=base64.b64encode(data).decode("ascii"),
        )
