"""
Blob stores for generated audio.

``SupabaseBlobStore`` publishes to a Supabase Storage bucket and resolves public
URLs. ``EphemeralBlobStore`` is the degraded mode: it keeps bytes in process
memory and hands out references that are only meaningful to this process.
"""

import asyncio
import re
import time
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from neuro_core.core.errors import PersistenceError

logger = structlog.get_logger(__name__)

EPHEMERAL_SCHEME = "blob:"


@dataclass
class StoredBlob:
    """Result of an upload."""
    path: str
    public_url: str
    content_type: str
    size_bytes: int


def safe_filename(filename: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", filename)


class BlobStore(ABC):
    """Binary asset storage."""

    # True when URLs returned by this store are reachable by remote services.
    is_public: bool = False

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> StoredBlob:
        pass

    @abstractmethod
    async def get_public_url(self, path: str) -> str:
        pass


class SupabaseBlobStore(BlobStore):
    """Supabase Storage bucket."""

    is_public = True

    def __init__(self, client: Any, bucket: str = "audio-files"):
        self._client = client
        self.bucket = bucket
        self._logger = logger.bind(store="supabase_storage", bucket=bucket)

    @classmethod
    def from_credentials(cls, url: str, key: str, bucket: str = "audio-files") -> "SupabaseBlobStore":
        from supabase import create_client

        return cls(create_client(url, key), bucket=bucket)

    async def upload(
        self,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> StoredBlob:
        path = safe_filename(filename or f"speech-{int(time.time() * 1000)}.mp3")
        bucket = self._client.storage.from_(self.bucket)

        try:
            await asyncio.to_thread(
                bucket.upload,
                path,
                data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
            public_url = await asyncio.to_thread(bucket.get_public_url, path)
        except Exception as e:
            raise PersistenceError(
                f"Storage upload failed: {e}",
                provider="supabase",
                details={"bucket": self.bucket, "path": path},
            ) from e

        self._logger.info("blob_uploaded", path=path, size_bytes=len(data))
        return StoredBlob(
            path=path,
            public_url=public_url,
            content_type=content_type,
            size_bytes=len(data),
        )

    async def get_public_url(self, path: str) -> str:
        try:
            return await asyncio.to_thread(self._client.storage.from_(self.bucket).get_public_url, path)
        except Exception as e:
            raise PersistenceError(f"Could not resolve public URL: {e}", provider="supabase") from e


class EphemeralBlobStore(BlobStore):
    """
    In-process blob references, valid only for the lifetime of this process.

    Holds at most ``max_entries`` blobs; the oldest is evicted first.
    """

    is_public = False

    def __init__(self, max_entries: int = 8) -> None:
        self.max_entries = max(1, max_entries)
        self._blobs: Dict[str, bytes] = OrderedDict()

    @property
    def count(self) -> int:
        return len(self._blobs)

    async def upload(
        self,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> StoredBlob:
        path = f"{EPHEMERAL_SCHEME}neuro/{uuid.uuid4()}"
        self._blobs[path] = data
        while len(self._blobs) > self.max_entries:
            evicted, _ = self._blobs.popitem(last=False)
            logger.debug("ephemeral_blob_evicted", path=evicted)
        return StoredBlob(
            path=path,
            public_url=path,
            content_type=content_type,
            size_bytes=len(data),
        )

    async def get_public_url(self, path: str) -> str:
        if path not in self._blobs:
            raise PersistenceError(f"Unknown ephemeral blob {path}", provider="ephemeral")
        return path

    def read(self, path: str) -> Optional[bytes]:
        return self._blobs.get(path)

    def release(self, path: str) -> None:
        self._blobs.pop(path, None)
