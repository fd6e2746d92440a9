import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import boto3

from dealership.core.environment import get_s3_settings

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    key: str
    url: str


class ObjectStorage:
    """S3 backed storage for bike images. boto3 calls run in the default executor."""

    def __init__(self, bucket: str, region: str, public_base_url: str):
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/")
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def _build_key(self, folder: str, filename: Optional[str]) -> str:
        extension = ""
        if filename and "." in filename:
            extension = "." + filename.rsplit(".", 1)[-1].lower()
        return f"{folder}/{uuid.uuid4().hex}{extension}"

    async def upload(self, content: bytes, content_type: str, folder: str, filename: Optional[str] = None) -> StoredObject:
        key = self._build_key(folder, filename)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            lambda: self.client.put_object(
                Bucket=self.bucket, Key=key, Body=content, ContentType=content_type
            ),
        )
        logger.info("Stored object", extra={"bucket": self.bucket, "key": key})
        return StoredObject(key=key, url=f"{self.public_base_url}/{key}")

    async def delete(self, key: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, lambda: self.client.delete_object(Bucket=self.bucket, Key=key)
        )


_storage: Optional[ObjectStorage] = None


def get_object_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        _storage = ObjectStorage(**get_s3_settings())
    return _storage
