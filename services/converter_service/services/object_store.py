"""
Object storage client for source videos and frame archives.

Wraps a boto3 S3 client. boto3 is synchronous, so every call is pushed
to a worker thread to keep the event loop free.
"""

import asyncio
import shutil
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import StorageError

logger = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPE = "application/zip"
DOWNLOAD_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredObject:
    """Object fetched from storage."""
    key: str
    content: bytes
    etag: Optional[str] = None
    version_id: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


def build_archive_key(user_id: str, archive_name: str) -> str:
    """Storage key for a user's frame archive."""
    return f"{user_id}/images/{archive_name}"


class S3ObjectStore:
    """
    S3 object store bound to one bucket.

    get/put raise StorageError on failure. delete is best-effort and
    only logs its failures.
    """

    def __init__(self, client, bucket: str) -> None:
        self._s3_client = client
        self.bucket = bucket

    async def get(self, key: str) -> StoredObject:
        """Fetch an object fully into memory."""
        return await asyncio.to_thread(self._get, key)

    def _get(self, key: str) -> StoredObject:
        try:
            response = self._s3_client.get_object(Bucket=self.bucket, Key=key)
            content = response['Body'].read()
        except Exception as e:
            logger.error(f"Failed to get object {key} from bucket {self.bucket}: {str(e)}")
            raise StorageError(f"Download failed: {e}", key=key) from e

        return StoredObject(
            key=key,
            content=content,
            etag=response.get('ETag'),
            version_id=response.get('VersionId'),
        )

    async def download_to(self, key: str, destination: Union[str, Path]) -> int:
        """
        Stream an object into a local file.

        Returns:
            Number of bytes written
        """
        return await asyncio.to_thread(self._download_to, key, Path(destination))

    def _download_to(self, key: str, destination: Path) -> int:
        try:
            response = self._s3_client.get_object(Bucket=self.bucket, Key=key)
            body = response['Body']
            with open(destination, 'wb') as f:
                shutil.copyfileobj(body, f, DOWNLOAD_CHUNK_SIZE)
            size = destination.stat().st_size
        except Exception as e:
            logger.error(f"Failed to download object {key} to {destination}: {str(e)}")
            raise StorageError(f"Download failed: {e}", key=key) from e

        logger.info(f"Downloaded {key} ({size} bytes) to {destination}")
        return size

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = ARCHIVE_CONTENT_TYPE,
    ) -> str:
        """Store an object and return its key."""
        return await asyncio.to_thread(self._put, key, data, content_type)

    def _put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self._s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except Exception as e:
            logger.error(f"Failed to upload object {key} to bucket {self.bucket}: {str(e)}")
            raise StorageError(f"Upload failed: {e}", key=key) from e

        logger.info(f"Uploaded {key} ({len(data)} bytes, {content_type})")
        return key

    async def delete(self, key: str) -> bool:
        """
        Delete an object.

        Failures are logged and swallowed.

        Returns:
            True if the delete call succeeded
        """
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object, Bucket=self.bucket, Key=key
            )
        except Exception as e:
            logger.error(f"Failed to delete object {key} from bucket {self.bucket}: {str(e)}")
            return False

        logger.info(f"Deleted object {key}")
        return True
