"""
FastAPI router for book endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from core.config import Settings
from core.storage import ObjectStore

from . import dependencies, schemas, service

router = APIRouter()


@router.post(
    "/books",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.BookCreatedResponse,
)
async def create_book(
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    price: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    settings: Settings = Depends(dependencies.get_settings),
    store: ObjectStore = Depends(dependencies.get_object_store),
) -> dict:
    """
    Create a book from a multipart form with an `image` file field.

    The image goes to the object store first; the row is inserted only after
    the upload succeeded.
    """
    book_id = await service.create_book(
        name=name,
        description=description,
        price=price,
        image=image,
        store=store,
        upload_dir=settings.upload_dir,
        max_upload_bytes=settings.max_upload_bytes,
    )
    return {"message": "Book created", "bookId": book_id}


@router.get("/books", response_model=list[schemas.BookResponse])
async def list_books() -> list[dict]:
    return await service.list_books()


@router.get("/books/{book_id}", response_model=schemas.BookResponse)
async def get_book(book_id: str) -> dict:
    return await service.get_book(book_id)


@router.delete("/books/{book_id}", response_model=schemas.MessageResponse)
async def delete_book(
    book_id: str,
    store: ObjectStore = Depends(dependencies.get_object_store),
) -> dict:
    await service.delete_book(book_id, store=store)
    return {"message": "Book deleted successfully"}
