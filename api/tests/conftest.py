"""
Shared fixtures.

The API tests run without Postgres or S3: the books repository is swapped
for an in-memory table and the object store for a recording fake.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from pathlib import Path
from typing import Any, BinaryIO

import pytest
from fastapi.testclient import TestClient

from books import repository
from core import db
from core.config import Settings
from core.storage import ObjectStore, ObjectStoreError
from main import create_app


class InMemoryBooks:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self.fail_insert = False
        self.fail_reads = False
        self.lookups: list[int] = []

    async def insert_book(self, *, name: str, description: str, price: Decimal, image_url: str) -> int:
        if self.fail_insert:
            raise db.StoreError("insert failed")
        book_id = next(self._ids)
        self.rows[book_id] = {
            "id": book_id,
            "name": name,
            "description": description,
            "price": price,
            "image_url": image_url,
        }
        return book_id

    async def get_book(self, book_id: int) -> dict[str, Any] | None:
        self.lookups.append(book_id)
        if self.fail_reads:
            raise db.StoreError("read failed")
        row = self.rows.get(book_id)
        return dict(row) if row is not None else None

    async def list_books(self) -> list[dict[str, Any]]:
        if self.fail_reads:
            raise db.StoreError("read failed")
        return [dict(r) for r in self.rows.values()]

    async def delete_book(self, book_id: int) -> dict[str, Any] | None:
        self.lookups.append(book_id)
        return self.rows.pop(book_id, None)


class FakeObjectStore(ObjectStore):
    def __init__(self) -> None:
        super().__init__(bucket="test-bucket", region="eu-west-1", client=None)
        self.objects: dict[str, bytes] = {}
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(self, key: str, body: bytes | BinaryIO, content_type: str | None) -> str:
        self.put_calls.append(key)
        if self.fail_put:
            raise ObjectStoreError("upload failed")
        self.objects[key] = body if isinstance(body, bytes) else body.read()
        return self.public_url(key)

    async def delete(self, key: str) -> bool:
        self.delete_calls.append(key)
        if self.fail_delete:
            raise ObjectStoreError("delete failed")
        return self.objects.pop(key, None) is not None


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    return Settings(
        database_url="postgresql://postgres@localhost:5432/books",
        s3_bucket="test-bucket",
        aws_region="eu-west-1",
        upload_dir=str(upload_dir),
        max_upload_bytes=1024,
    )


@pytest.fixture
def books_table(monkeypatch: pytest.MonkeyPatch) -> InMemoryBooks:
    table = InMemoryBooks()
    monkeypatch.setattr(repository, "insert_book", table.insert_book)
    monkeypatch.setattr(repository, "get_book", table.get_book)
    monkeypatch.setattr(repository, "list_books", table.list_books)
    monkeypatch.setattr(repository, "delete_book", table.delete_book)
    return table


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def client(settings: Settings, object_store: FakeObjectStore, books_table: InMemoryBooks) -> TestClient:
    # Not used as a context manager: the lifespan (pool + DDL) stays off.
    app = create_app(settings, object_store=object_store)
    return TestClient(app)
