"""
Blob collaborator: opaque key -> bytes storage for image payloads.

The kernel only reads and writes storage keys; it never looks inside the
bytes. MinioBlobStore talks to any S3-compatible server.
"""

import asyncio
import io
from datetime import timedelta
from typing import Optional, Protocol

from minio import Minio
from minio.error import S3Error

from sightings.kernel.errors import NotFoundError
from sightings.logging_config import get_logger

logger = get_logger(__name__)


class BlobStore(Protocol):
    """Operations the stores need from object storage."""

    async def put(self, key: str, data: bytes, content_type: str) -> str: ...

    async def get(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...

    async def signed_url(self, key: str, ttl_seconds: int) -> str: ...


class MinioBlobStore:
    """
    BlobStore over the MinIO SDK.

    The SDK is blocking, so every call runs in a worker thread. The bucket
    is created lazily before the first write.
    """

    def __init__(self, client: Minio, bucket: str):
        self.client = client
        self.bucket = bucket
        self._bucket_ready = False
        self._bucket_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = False,
        region: Optional[str] = None,
    ) -> "MinioBlobStore":
        client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        return cls(client, bucket)

    async def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        async with self._bucket_lock:
            if self._bucket_ready:
                return
            exists = await asyncio.to_thread(self.client.bucket_exists, bucket_name=self.bucket)
            if not exists:
                await asyncio.to_thread(self.client.make_bucket, bucket_name=self.bucket)
                logger.info("Created bucket", extra={"bucket": self.bucket})
            self._bucket_ready = True

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        await self._ensure_bucket()
        await asyncio.to_thread(
            self.client.put_object,
            bucket_name=self.bucket,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        logger.debug("Stored blob", extra={"storage_key": key, "size": len(data)})
        return key

    async def get(self, key: str) -> bytes:
        def _read() -> bytes:
            response = self.client.get_object(bucket_name=self.bucket, object_name=key)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            return await asyncio.to_thread(_read)
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                raise NotFoundError(f"Blob {key} not found") from exc
            raise

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(
            self.client.remove_object, bucket_name=self.bucket, object_name=key
        )
        logger.debug("Deleted blob", extra={"storage_key": key})

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        return await asyncio.to_thread(
            self.client.presigned_get_object,
            bucket_name=self.bucket,
            object_name=key,
            expires=timedelta(seconds=ttl_seconds),
        )
