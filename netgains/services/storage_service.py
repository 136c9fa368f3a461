import asyncio
import logging
from typing import Dict, Optional, Protocol, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from netgains.config import settings
from netgains.exceptions import AttachmentUploadError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    async def put(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its public URL."""
        ...

    async def delete(self, path: str) -> None:
        ...


class S3ObjectStorage:
    """Attachment storage on S3. boto3 is blocking, so every call runs in a worker thread."""

    def __init__(self, bucket: str, region_name: str, public_base_url: Optional[str] = None):
        self.bucket = bucket
        self.region_name = region_name
        self.public_base_url = public_base_url
        self._client = None

    @property
    def client(self):
        """Lazy-loaded S3 client"""
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region_name)
        return self._client

    def public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return f"https://{self.bucket}.s3.{self.region_name}.amazonaws.com/{path}"

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {path} to S3: {e}")
            raise AttachmentUploadError(f"Upload failed for {path}") from e
        return self.public_url(path)

    async def delete(self, path: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting {path} from S3: {e}")
            raise AttachmentUploadError(f"Delete failed for {path}") from e


class InMemoryObjectStorage:
    """Keeps objects in a dict. Used in development and tests."""

    def __init__(self, base_url: str = "memory://attachments"):
        self.base_url = base_url
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        self.objects[path] = (data, content_type)
        return f"{self.base_url}/{path}"

    async def delete(self, path: str) -> None:
        self.objects.pop(path, None)


_storage: Optional[ObjectStorage] = None


def get_object_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        if settings.storage_backend == "memory":
            _storage = InMemoryObjectStorage()
        else:
            _storage = S3ObjectStorage(
                bucket=settings.attachments_bucket,
                region_name=settings.aws_region,
                public_base_url=settings.attachments_public_base_url,
            )
        logger.info(f"Using {type(_storage).__name__} for attachments")
    return _storage


def set_object_storage(storage: Optional[ObjectStorage]) -> None:
    global _storage
    _storage = storage
