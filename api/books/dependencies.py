"""
Request-scoped access to process-wide objects built in the app lifespan.
"""

from __future__ import annotations

from fastapi import Request

from core.config import Settings
from core.storage import ObjectStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store
