"""
Process configuration.

Settings are read from the environment (plus a `.env` file, if present)
once at startup (see `api/main.py`)
and handed to the DB pool, the object store and the upload intake.
Nothing else in the codebase reads `os.environ` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import quote

from dotenv import load_dotenv

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout_s: float = 30.0
    db_create_database: bool = False

    s3_bucket: str = ""
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    s3_endpoint_url: str | None = None

    upload_dir: str = "uploads"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    port: int = 3000
    cors_origins: tuple[str, ...] = ()
    log_level: str = "INFO"


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or "").strip() or default


def _optional(env: Mapping[str, str], name: str) -> str | None:
    return _get(env, name) or None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = _get(env, name).lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def build_database_url(env: Mapping[str, str]) -> str:
    """
    Prefer DATABASE_URL; otherwise assemble a DSN from DB_HOST/DB_PORT/DB_USER/DB_PASSWORD/DB_NAME.
    """
    url = _get(env, "DATABASE_URL")
    if url:
        return url

    host = _get(env, "DB_HOST", "localhost")
    port = _env_int(env, "DB_PORT", 5432)
    user = quote(_get(env, "DB_USER", "postgres"), safe="")
    password = _get(env, "DB_PASSWORD")
    name = _get(env, "DB_NAME", "books")

    auth = f"{user}:{quote(password, safe='')}" if password else user
    return f"postgresql://{auth}@{host}:{port}/{name}"


def load_settings(environ: Mapping[str, str] | None = None, *, env_file: str | None = ".env") -> Settings:
    """
    Build settings from `environ`, or from the process environment after
    loading `env_file`. Variables already set in the process win over the file.
    """
    if environ is None and env_file:
        load_dotenv(env_file, override=False)
    env = os.environ if environ is None else environ

    bucket = _get(env, "S3_BUCKET_NAME")
    if not bucket:
        raise ConfigError("S3_BUCKET_NAME is not set.")

    pool_min = _env_int(env, "DB_POOL_MIN_SIZE", 1)
    pool_max = _env_int(env, "DB_POOL_MAX_SIZE", 5)
    if pool_max < 1 or pool_min < 0 or pool_min > pool_max:
        raise ConfigError(
            f"Invalid DB pool size: min={pool_min} max={pool_max}. Need 0 <= min <= max and max >= 1."
        )

    max_upload = _env_int(env, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload <= 0:
        raise ConfigError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    origins = tuple(o.strip() for o in _get(env, "CORS_ORIGINS").split(",") if o.strip())

    return Settings(
        database_url=build_database_url(env),
        db_pool_min_size=pool_min,
        db_pool_max_size=pool_max,
        db_command_timeout_s=float(_env_int(env, "DB_COMMAND_TIMEOUT_S", 30)),
        db_create_database=_env_bool(env, "DB_CREATE_DATABASE"),
        s3_bucket=bucket,
        aws_region=_get(env, "AWS_REGION", "us-east-1"),
        aws_access_key_id=_optional(env, "AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=_optional(env, "AWS_SECRET_ACCESS_KEY"),
        aws_session_token=_optional(env, "AWS_SESSION_TOKEN"),
        s3_endpoint_url=_optional(env, "S3_ENDPOINT_URL"),
        upload_dir=_get(env, "UPLOAD_DIR", "uploads"),
        max_upload_bytes=max_upload,
        port=_env_int(env, "PORT", 3000),
        cors_origins=origins,
        log_level=_get(env, "LOG_LEVEL", "INFO").upper(),
    )
