"""
Upload intake.

The uploaded image is streamed to a local staging directory first, then
pushed to the object store from there. The staged copy is always removed
by the caller via `discard()` once the request is done with it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import aiofiles
from fastapi import HTTPException, UploadFile, status

CHUNK_SIZE = 1024 * 1024  # 1 MiB
OBJECT_KEY_PREFIX = "images/"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedFile:
    path: Path
    filename: str
    content_type: str | None
    size_bytes: int


def safe_filename(filename: str | None) -> str:
    """
    Strip any directory part and replace characters that are awkward in
    file paths and object keys.
    """
    name = Path((filename or "").replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


def unique_name(filename: str | None) -> str:
    return f"{uuid4().hex}-{safe_filename(filename)}"


def object_key_for(filename: str | None) -> str:
    return OBJECT_KEY_PREFIX + unique_name(filename)


async def stage_upload(upload: UploadFile, *, upload_dir: str | Path, max_bytes: int) -> StagedFile:
    """
    Stream `upload` to disk in chunks, enforcing a maximum size.

    File presence is checked by the caller (`service.validate_create`).
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / unique_name(upload.filename)

    size = 0
    try:
        async with aiofiles.open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"File too large. Max is {max_bytes} bytes.",
                    )
                await out.write(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    if size == 0:
        path.unlink(missing_ok=True)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file is empty.")

    logger.debug("upload_staged path=%s size_bytes=%s", path, size)
    return StagedFile(
        path=path,
        filename=upload.filename or "",
        content_type=upload.content_type,
        size_bytes=size,
    )


def discard(staged: StagedFile) -> None:
    staged.path.unlink(missing_ok=True)
