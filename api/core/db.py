"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Every driver failure leaving this module is a `StoreError`, so callers never
need to know about asyncpg exception types.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .config import Settings

_pool: asyncpg.Pool | None = None

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class StoreError(RuntimeError):
    pass


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_name(url: str) -> str:
    return urlsplit(url).path.lstrip("/")


def _maintenance_url(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "/postgres", parts.query, parts.fragment))


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


async def ensure_database(settings: Settings) -> bool:
    """
    Create the target database if it does not exist yet.

    Returns True when the database was created. Only used when
    DB_CREATE_DATABASE is on; managed databases normally exist already.
    """
    url = _sanitize_database_url(settings.database_url)
    name = database_name(url)
    if not name:
        raise StoreError("DATABASE_URL has no database name.")

    try:
        conn = await asyncpg.connect(dsn=_maintenance_url(url), timeout=settings.db_command_timeout_s)
    except _DRIVER_ERRORS as exc:
        raise StoreError("Could not connect to the maintenance database.") from exc

    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", name)
        if exists:
            return False
        # CREATE DATABASE does not accept bind parameters.
        await conn.execute(f"CREATE DATABASE {_quote_ident(name)}")
        logger.info("database_created name=%s", name)
        return True
    except _DRIVER_ERRORS as exc:
        raise StoreError(f"Could not create database {name!r}.") from exc
    finally:
        await conn.close()


async def init_pool(settings: Settings) -> None:
    global _pool
    if _pool is not None:
        return None
    try:
        _pool = await asyncpg.create_pool(
            dsn=_sanitize_database_url(settings.database_url),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout_s,
        )
    except _DRIVER_ERRORS as exc:
        raise StoreError("Could not open the database pool.") from exc


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise StoreError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    try:
        row = await pool().fetchrow(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise StoreError("Database query failed.") from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        rows = await pool().fetch(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise StoreError("Database query failed.") from exc
    return [_record_to_dict(r) for r in rows]


async def execute(sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    try:
        await pool().execute(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise StoreError("Database statement failed.") from exc
