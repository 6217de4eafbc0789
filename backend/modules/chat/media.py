"""
Media uploaders.

Provides both in-memory (for testing) and Supabase Storage (for production)
implementations of IMediaUploader.
"""

import asyncio
import logging

from supabase import Client

from .exceptions import MediaUploadFailedError

logger = logging.getLogger(__name__)


class InMemoryMediaUploader:
    """
    Keeps uploaded objects in a dict.

    For testing and development. Use SupabaseStorageUploader for production.
    """

    def __init__(self, base_url: str = "memory://chat-media"):
        self._base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._failures: list[MediaUploadFailedError] = []

    def fail_next(self, detail: str = "simulated upload failure") -> None:
        self._failures.append(MediaUploadFailedError(detail))

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self._failures:
            raise self._failures.pop(0)
        self.objects[path] = (bytes(data), content_type)
        return f"{self._base_url}/{path}"


class SupabaseStorageUploader:
    """Uploads to a Supabase Storage bucket and returns the public URL."""

    def __init__(self, db: Client, bucket: str = "chat-media"):
        self._db = db
        self._bucket = bucket

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self._db.storage.from_(self._bucket)
        bucket.upload(path, data, {"content-type": content_type, "upsert": "false"})
        return bucket.get_public_url(path)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            url = await asyncio.to_thread(self._upload_sync, path, data, content_type)
        except Exception as e:
            logger.warning(f"Upload of {path} to bucket {self._bucket} failed: {e}")
            raise MediaUploadFailedError(
                "storage rejected the upload",
                details={"path": path, "cause": str(e)},
            ) from e
        logger.info(f"Uploaded {len(data)} bytes to {self._bucket}/{path}")
        return url
