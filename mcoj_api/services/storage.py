"""
Object store adapters.

A BlobStore keeps files in named buckets. Two implementations exist: the
local-disk store below, used for development and tests, and the Cloudinary
store in cloudinary_service.py. The configured one is built at startup and
injected into routes (see mcoj_api/dependencies.py).
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
import logging
import re

from mcoj_api.errors import UpstreamStoreError, ValidationError

logger = logging.getLogger(__name__)

# Buckets the site needs; gallery and thumbnails are publicly readable
REQUIRED_BUCKETS = ["videos", "gallery", "thumbnails", "temp", "events", "bookings"]
PUBLIC_BUCKETS = {"gallery", "thumbnails"}

_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")


def check_key(key: str) -> str:
    """Reject keys that could escape their bucket."""
    if not key or not _KEY_PATTERN.match(key) or key in (".", ".."):
        raise ValidationError(f"Invalid object key: {key!r}")
    return key


class BlobStore(ABC):
    """Bucket/key blob storage used by the services."""

    name = "abstract"

    @abstractmethod
    async def upload(self, bucket: str, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store data under bucket/key, overwriting, and return its public URL."""

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> bool:
        """Remove bucket/key. Returns False if it did not exist."""

    @abstractmethod
    async def list(self, bucket: str) -> List[Dict]:
        """List objects in a bucket as dicts with name, size and id (see object_id)."""

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        pass

    @abstractmethod
    async def bucket_exists(self, bucket: str) -> bool:
        pass

    @abstractmethod
    async def create_bucket(self, bucket: str, public: bool = False) -> bool:
        pass

    def object_id(self, bucket: str, key: str) -> str:
        """
        What the store actually addresses for bucket/key. Listed objects carry
        the same value under "id", so references are compared on it.
        """
        return key

    async def unreferenced(self, bucket: str, keys) -> List[Dict]:
        """Objects in bucket that none of keys points at."""
        referenced = {self.object_id(bucket, key) for key in keys if key}
        return [obj for obj in await self.list(bucket) if obj["id"] not in referenced]

    async def discard(self, bucket: str, key: str) -> None:
        """Best-effort delete of a blob whose row was never written."""
        try:
            await self.delete(bucket, key)
        except (UpstreamStoreError, ValidationError) as e:
            logger.error(f"Failed to discard {bucket}/{key}: {e.message}")


class LocalBlobStore(BlobStore):
    """
    Filesystem store: each bucket is a directory under root and URLs are
    served from base_url by the StaticFiles mount in main.py.
    """

    name = "local"

    def __init__(self, root, base_url: str = "/media"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _bucket_dir(self, bucket: str) -> Path:
        return self.root / check_key(bucket)

    async def upload(self, bucket: str, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._bucket_dir(bucket) / check_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {bucket}/{key}: {str(e)}")
            raise UpstreamStoreError(f"Failed to store {bucket}/{key}: {str(e)}")

        logger.info(f"Stored {bucket}/{key} ({len(data):,} bytes)")
        return self.public_url(bucket, key)

    async def delete(self, bucket: str, key: str) -> bool:
        path = self._bucket_dir(bucket) / check_key(key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete {bucket}/{key}: {str(e)}")
            raise UpstreamStoreError(f"Failed to delete {bucket}/{key}: {str(e)}")

        logger.info(f"Deleted {bucket}/{key}")
        return True

    async def list(self, bucket: str) -> List[Dict]:
        directory = self._bucket_dir(bucket)
        if not directory.is_dir():
            return []
        return [
            {"name": entry.name, "size": entry.stat().st_size, "id": entry.name}
            for entry in sorted(directory.iterdir())
            if entry.is_file() and not entry.name.startswith(".")
        ]

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/{bucket}/{key}"

    async def bucket_exists(self, bucket: str) -> bool:
        return self._bucket_dir(bucket).is_dir()

    async def create_bucket(self, bucket: str, public: bool = False) -> bool:
        try:
            self._bucket_dir(bucket).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating bucket \"{bucket}\": {str(e)}")
            return False
        logger.info(f"Created bucket \"{bucket}\"")
        return True
