"""Cloudflare R2 storage for generated media.

Uploads narration audio and locally materialized videos/images to
Cloudflare R2 (S3-compatible object storage) so that downstream providers
can fetch them by public URL.
"""

import asyncio
import logging
import mimetypes
from io import BytesIO
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from services.errors import StorageError
from services.providers.base import AssetStorage

logger = logging.getLogger(__name__)

MEDIA_CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".json": "application/json",
}


def normalize_public_url(public_url: str) -> str:
    """Ensure the public base URL has a scheme and no trailing slash."""
    public_url = public_url.strip()
    if not public_url.startswith("http"):
        public_url = f"https://{public_url}"
    return public_url.rstrip("/")


def guess_content_type(key: str) -> str:
    """Guess a MIME type from an object key's extension."""
    content_type, _ = mimetypes.guess_type(key)
    if content_type:
        return content_type
    return MEDIA_CONTENT_TYPES.get(Path(key).suffix.lower(), "application/octet-stream")


class R2Storage(AssetStorage):
    """Cloudflare R2 object storage service.

    Uses boto3 with S3-compatible API to interact with Cloudflare R2.
    Objects are served from ``public_url``, typically an r2.dev domain or a
    custom CDN hostname bound to the bucket.
    """

    name = "Cloudflare R2"

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        public_url: str,
        bucket_name: str = "histori-studio",
        client: Optional[Any] = None,
    ):
        """Initialize R2 storage.

        Args:
            account_id: Cloudflare account ID
            access_key_id: R2 API access key ID
            secret_access_key: R2 API secret access key
            public_url: Public URL base objects are served from
            bucket_name: R2 bucket name
            client: Pre-built S3 client (created from the credentials otherwise)
        """
        self.account_id = account_id
        self.bucket_name = bucket_name
        self.public_url = normalize_public_url(public_url)

        # Configure S3 client for R2
        self._client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
        )

        logger.info(f"R2 storage initialized for bucket: {bucket_name}")

    def object_url(self, key: str) -> str:
        return f"{self.public_url}/{key.lstrip('/')}"

    def upload_file(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """Upload bytes to R2 (blocking).

        Args:
            key: Object key (path in bucket)
            data: File contents
            content_type: MIME type (guessed from the key if not provided)

        Returns:
            Public URL of the object

        Raises:
            StorageError: If R2 rejects the upload
        """
        extra_args = {"ContentType": content_type or guess_content_type(key)}

        try:
            self._client.upload_fileobj(
                BytesIO(data),
                self.bucket_name,
                key,
                ExtraArgs=extra_args,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise StorageError(f"R2 upload failed for {key}: {e}", provider=self.name)

        logger.info(f"Uploaded {key} to R2 ({len(data)} bytes)")
        return self.object_url(key)

    async def upload(self, data: bytes, file_name: str, content_type: str) -> str:
        # boto3 is synchronous; keep the event loop free while it runs
        return await asyncio.to_thread(self.upload_file, file_name, data, content_type)


def get_r2_storage(config: dict, client: Optional[Any] = None) -> Optional[R2Storage]:
    """Create an R2Storage from configuration.

    Args:
        config: Dict from utils.config.load_config
        client: Optional pre-built S3 client

    Returns:
        R2Storage instance or None if R2 is not fully configured
    """
    required = ("r2_account_id", "r2_access_key_id", "r2_secret_access_key", "r2_public_url")
    if not all(config.get(key) for key in required):
        logger.debug("R2 storage not configured - missing credentials or public URL")
        return None

    return R2Storage(
        account_id=config["r2_account_id"],
        access_key_id=config["r2_access_key_id"],
        secret_access_key=config["r2_secret_access_key"],
        public_url=config["r2_public_url"],
        bucket_name=config.get("r2_bucket_name") or "histori-studio",
        client=client,
    )
