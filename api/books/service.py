"""
Book "service layer".

Orchestrates the upload intake, the object store and the books table:
- create: validate -> stage -> upload -> insert (delete the upload if the insert fails)
- delete: delete row -> best-effort delete of the image

Client errors are raised as HTTPException here. Store failures propagate as
`StoreError` / `ObjectStoreError` and are mapped to 500 in `api/main.py`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

from fastapi import HTTPException, UploadFile, status
from pydantic import ValidationError

from core import db
from core.storage import ObjectStore, ObjectStoreError

from . import repository, schemas, staging

logger = logging.getLogger(__name__)

# books.id is BIGSERIAL.
_MAX_BOOK_ID = 2**63 - 1
_BOOK_ID_PATTERN = re.compile(r"[0-9]{1,19}")


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found.")


def parse_book_id(raw: str | int) -> int:
    """
    Path ids that cannot name a row (not a positive integer, or beyond BIGINT)
    are reported as missing books rather than bad input or a driver error.
    """
    text = str(raw).strip()
    if not _BOOK_ID_PATTERN.fullmatch(text):
        raise _not_found()
    book_id = int(text)
    if book_id < 1 or book_id > _MAX_BOOK_ID:
        raise _not_found()
    return book_id


def validate_create(
    *,
    name: str | None,
    description: str | None,
    price: str | None,
    image: UploadFile | None,
) -> schemas.BookCreate:
    """
    Check required input before either store is touched.
    """
    if image is None or not image.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file is required.")

    try:
        return schemas.BookCreate(name=name, description=description, price=price)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problems) from exc


async def _remove_orphan(store: ObjectStore, key: str) -> None:
    try:
        await store.delete(key)
    except ObjectStoreError:
        logger.exception("orphaned_object bucket=%s key=%s", store.bucket, key)


async def create_book(
    *,
    name: str | None,
    description: str | None,
    price: str | None,
    image: UploadFile | None,
    store: ObjectStore,
    upload_dir: str | Path,
    max_upload_bytes: int,
) -> int:
    payload = validate_create(name=name, description=description, price=price, image=image)

    staged = await staging.stage_upload(image, upload_dir=upload_dir, max_bytes=max_upload_bytes)
    key = staging.object_key_for(staged.filename)
    try:
        body = await asyncio.to_thread(staged.path.open, "rb")
        try:
            image_url = await store.put(key, body, staged.content_type)
        finally:
            body.close()

        try:
            book_id = await repository.insert_book(
                name=payload.name,
                description=payload.description,
                price=payload.price,
                image_url=image_url,
            )
        except db.StoreError:
            # The row never existed, so the uploaded object would be unreachable.
            await _remove_orphan(store, key)
            raise
    finally:
        staging.discard(staged)

    logger.info("book_created book_id=%s key=%s size_bytes=%s", book_id, key, staged.size_bytes)
    return book_id


async def get_book(raw_id: str | int) -> dict[str, Any]:
    row = await repository.get_book(parse_book_id(raw_id))
    if row is None:
        raise _not_found()
    return row


async def list_books() -> list[dict[str, Any]]:
    return await repository.list_books()


async def delete_book(raw_id: str | int, *, store: ObjectStore) -> dict[str, Any]:
    """
    Delete the row first, then try to delete its image.

    The row is the source of truth, so a failed image delete is logged and
    does not fail the request.
    """
    book_id = parse_book_id(raw_id)
    row = await repository.delete_book(book_id)
    if row is None:
        raise _not_found()

    key = store.key_from_url(row.get("image_url"))
    if key is None:
        logger.warning("book_image_not_in_bucket book_id=%s image_url=%s", book_id, row.get("image_url"))
        return row

    try:
        await store.delete(key)
    except ObjectStoreError:
        logger.exception("orphaned_object bucket=%s key=%s book_id=%s", store.bucket, key, book_id)

    logger.info("book_deleted book_id=%s key=%s", book_id, key)
    return row
