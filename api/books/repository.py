"""
Book persistence.
This module is where book-related SQL lives.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from core import db

_BOOK_COLUMNS = "id, name, description, price, image_url"


async def ensure_schema() -> None:
    """
    Create the books table if it is missing. Safe to run on every start.
    """
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS books (
          id          BIGSERIAL PRIMARY KEY,
          name        VARCHAR(255) NOT NULL,
          description TEXT NOT NULL,
          price       NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
          image_url   VARCHAR(1024) NOT NULL
        )
        """
    )


async def insert_book(
    *,
    name: str,
    description: str,
    price: Decimal,
    image_url: str,
) -> int:
    row = await db.fetch_one(
        """
        INSERT INTO books (name, description, price, image_url)
        VALUES ($1, $2, $3, $4)
        RETURNING id
        """,
        name,
        description,
        price,
        image_url,
    )
    if row is None or "id" not in row:
        raise db.StoreError("Failed to insert book.")
    return int(row["id"])


async def get_book(book_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_BOOK_COLUMNS}
        FROM books
        WHERE id = $1
        """,
        book_id,
    )


async def list_books() -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_BOOK_COLUMNS}
        FROM books
        ORDER BY id
        """
    )


async def delete_book(book_id: int) -> dict[str, Any] | None:
    """
    Delete a book row.
    Returns the deleted row (callers need its image_url), or None when not found.
    """
    return await db.fetch_one(
        f"""
        DELETE FROM books
        WHERE id = $1
        RETURNING {_BOOK_COLUMNS}
        """,
        book_id,
    )
