"""
Book API schemas (request/response models).
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class BookCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        # Stored as given; only whitespace-only names are refused.
        if not value.strip():
            raise ValueError("name must not be blank")
        return value


class BookResponse(BaseModel):
    id: int
    name: str
    description: str
    price: float
    image_url: str


class BookCreatedResponse(BaseModel):
    message: str
    bookId: int


class MessageResponse(BaseModel):
    message: str
