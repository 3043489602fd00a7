"""
S3 object store helpers.

boto3 is synchronous, so every call runs in a worker thread to keep the
event loop free while the upload or delete is in flight.

URL format:
- AWS:             https://{bucket}.s3.{region}.amazonaws.com/{key}
- custom endpoint: {endpoint}/{bucket}/{key}   (MinIO, LocalStack)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


# Object store failures are explicit and separable from DB errors.
class ObjectStoreError(RuntimeError):
    pass


class ObjectStore:
    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        client: Any,
        endpoint_url: str | None = None,
    ) -> None:
        bucket = (bucket or "").strip()
        if not bucket:
            raise ObjectStoreError("Bucket name is empty.")
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStore":
        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
            endpoint_url=settings.s3_endpoint_url,
        )
        return cls(
            bucket=settings.s3_bucket,
            region=settings.aws_region,
            client=client,
            endpoint_url=settings.s3_endpoint_url,
        )

    def _base_url(self) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"

    def public_url(self, key: str) -> str:
        return f"{self._base_url()}/{key.lstrip('/')}"

    def key_from_url(self, url: str | None) -> str | None:
        """
        Inverse of `public_url`. Returns None for URLs that point elsewhere.
        """
        prefix = self._base_url() + "/"
        if not url or not url.startswith(prefix):
            return None
        key = url[len(prefix):].strip()
        return key or None

    async def put(self, key: str, body: bytes | BinaryIO, content_type: str | None) -> str:
        """
        Upload `body` under `key` and return its URL.
        """
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type or "application/octet-stream",
        }
        try:
            await asyncio.to_thread(self._client.put_object, **params)
        except (ClientError, BotoCoreError) as exc:
            raise ObjectStoreError(f"Upload of {key!r} to bucket {self.bucket!r} failed.") from exc
        return self.public_url(key)

    async def delete(self, key: str) -> bool:
        """
        Delete `key`. A missing object is not an error: returns False.
        """
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                logger.info("object_delete_missing bucket=%s key=%s", self.bucket, key)
                return False
            raise ObjectStoreError(f"Delete of {key!r} from bucket {self.bucket!r} failed.") from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(f"Delete of {key!r} from bucket {self.bucket!r} failed.") from exc
        return True
