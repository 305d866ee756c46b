"""
Storage Providers

Durable homes for uploaded videos. The local provider writes under
MEDIA_ROOT and is served directly by the stream endpoint; the S3 provider
puts objects in a bucket and hands out presigned GET URLs.

Both probe the stored media with ffprobe. Probe failures only cost the
technical metadata; transfer failures raise StorageError.
"""
import asyncio
import logging
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from config import settings
from exceptions import StorageError
from services.interfaces import IStorageProvider, TransferResult
from utils.video_metadata import get_video_metadata

logger = logging.getLogger(__name__)


def _result_with_metadata(reference: str, url: str, size: int, metadata: Optional[dict]) -> TransferResult:
    metadata = metadata or {}
    return TransferResult(
        reference=reference,
        url=url,
        size_bytes=size,
        duration_seconds=metadata.get('duration'),
        width=metadata.get('width'),
        height=metadata.get('height'),
        codec=metadata.get('codec'),
        bitrate=metadata.get('bitrate'),
        container_format=metadata.get('format'),
    )


class LocalStorageProvider(IStorageProvider):
    """Stores videos as files under a media root directory."""

    def __init__(self, media_root: Path):
        self.media_root = Path(media_root)

    def _path_for(self, reference: str) -> Path:
        path = (self.media_root / reference).resolve()
        if self.media_root.resolve() not in path.parents:
            raise StorageError("resolve", f"Invalid storage reference: {reference}")
        return path

    def _write(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def transfer(self, data: bytes, name: str) -> TransferResult:
        path = self._path_for(name)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write, path, data)
        except OSError as e:
            raise StorageError("transfer", f"Failed to store {name}: {e}") from e

        metadata = await loop.run_in_executor(None, get_video_metadata, str(path))
        logger.info(f"Stored {name} locally ({len(data)} bytes)")
        return _result_with_metadata(name, path.as_uri(), len(data), metadata)

    async def delete(self, reference: str) -> None:
        path = self._path_for(reference)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Stored file {reference} already removed")
        except OSError as e:
            raise StorageError("delete", f"Failed to delete {reference}: {e}") from e

    def local_path(self, reference: str) -> Optional[Path]:
        path = self._path_for(reference)
        return path if path.is_file() else None

    def signed_url(self, reference: str) -> str:
        return self._path_for(reference).as_uri()


def get_s3_client():
    """SDK client for server-side upload, delete and URL signing."""
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def _probe_bytes(data: bytes, suffix: str) -> Optional[dict]:
    """Write bytes to a temporary file just long enough to run ffprobe on it."""
    fd, tmp_path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        return get_video_metadata(tmp_path)
    finally:
        try:
            os.remove(tmp_path)
        except OSError:
            pass


class S3StorageProvider(IStorageProvider):
    """Stores videos as objects in an S3-compatible bucket."""

    def __init__(
        self,
        bucket: str,
        key_prefix: str = "",
        client=None,
        presign_expire_seconds: int = 900,
    ):
        self.bucket = bucket
        self.key_prefix = key_prefix.strip("/")
        self._client = client
        self.presign_expire_seconds = presign_expire_seconds

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    def _key_for(self, name: str) -> str:
        return f"{self.key_prefix}/{name}" if self.key_prefix else name

    async def transfer(self, data: bytes, name: str) -> TransferResult:
        key = self._key_for(name)
        loop = asyncio.get_running_loop()
        put = partial(self.client.put_object, Bucket=self.bucket, Key=key, Body=data)
        try:
            await loop.run_in_executor(None, put)
        except (BotoCoreError, ClientError) as e:
            raise StorageError("transfer", f"Failed to upload {key}: {e}") from e

        metadata = await loop.run_in_executor(None, _probe_bytes, data, Path(name).suffix)
        logger.info(f"Uploaded s3://{self.bucket}/{key} ({len(data)} bytes)")
        return _result_with_metadata(key, f"s3://{self.bucket}/{key}", len(data), metadata)

    async def delete(self, reference: str) -> None:
        loop = asyncio.get_running_loop()
        remove = partial(self.client.delete_object, Bucket=self.bucket, Key=reference)
        try:
            await loop.run_in_executor(None, remove)
        except (BotoCoreError, ClientError) as e:
            raise StorageError("delete", f"Failed to delete {reference}: {e}") from e

    def signed_url(self, reference: str) -> str:
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": reference},
                ExpiresIn=self.presign_expire_seconds,
                HttpMethod="GET",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError("sign", f"Failed to sign URL for {reference}: {e}") from e


def create_storage_provider() -> IStorageProvider:
    """Build the provider selected by VSP_STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "s3":
        return S3StorageProvider(
            bucket=settings.S3_BUCKET,
            key_prefix=settings.S3_KEY_PREFIX,
            presign_expire_seconds=settings.S3_PRESIGN_EXPIRE_SECONDS,
        )
    return LocalStorageProvider(settings.MEDIA_ROOT)
