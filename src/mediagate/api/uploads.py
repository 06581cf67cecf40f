"""Upload layer: persist a multipart file and hand back an asset handle.

Each upload is written under the configured uploads directory with a random
hex name, the same way multer's ``dest`` option stores files.  The returned
handle belongs to the caller, which passes it to the pipeline for disposal.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from mediagate.core.assets import FileAssetHandle

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class StoredUpload:
    """An upload written to disk together with its declared MIME type."""

    asset: FileAssetHandle
    mime_type: str
    filename: str | None = None


def _copy_to_disk(upload: UploadFile, destination: Path) -> int:
    upload.file.seek(0)
    with open(destination, "wb") as out:
        shutil.copyfileobj(upload.file, out)
    return destination.stat().st_size


async def store_upload(upload: UploadFile | None, uploads_dir: Path) -> StoredUpload | None:
    """Write *upload* to *uploads_dir*.

    Args:
        upload: The multipart file, or ``None`` when the field was absent.
        uploads_dir: Directory receiving the file.

    Returns:
        The stored upload, or ``None`` when no file was attached.  A part
        without a filename counts as no file.
    """
    if upload is None or not upload.filename:
        return None

    uploads_dir.mkdir(parents=True, exist_ok=True)
    destination = uploads_dir / uuid.uuid4().hex
    try:
        size = await run_in_threadpool(_copy_to_disk, upload, destination)
    except Exception:
        destination.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    mime_type = upload.content_type or DEFAULT_MIME_TYPE
    logger.info(
        "Stored upload '%s' (%d bytes, %s) at '%s'.",
        upload.filename,
        size,
        mime_type,
        destination,
    )
    return StoredUpload(
        asset=FileAssetHandle(destination),
        mime_type=mime_type,
        filename=upload.filename,
    )
