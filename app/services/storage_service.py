"""S3 Storage Service for payment proof uploads.

Works against any S3-compatible backend (AWS S3, DigitalOcean Spaces, MinIO).
boto3 is blocking, so every call is pushed to a worker thread and bounded by
the botocore connect/read timeouts.
"""

import asyncio
import logging
import uuid
from io import BytesIO
from urllib.parse import unquote, urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

# Proof locator for payments sent over WhatsApp, there is no stored object
WHATSAPP_PROOF = "whatsapp"


class StorageService:
    """S3-compatible storage for payment proofs."""

    def __init__(self, settings: Settings, client=None) -> None:
        self._client = client
        self._settings = settings
        self._bucket = settings.s3_bucket_name

    @property
    def client(self):
        """Lazy-load S3 client."""
        if self._client is None:
            config = Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
                connect_timeout=self._settings.storage_timeout_seconds,
                read_timeout=self._settings.storage_timeout_seconds,
            )
            self._client = boto3.client(
                "s3",
                aws_access_key_id=self._settings.aws_access_key_id,
                aws_secret_access_key=self._settings.aws_secret_access_key,
                region_name=self._settings.aws_region,
                endpoint_url=self._settings.s3_endpoint_url,
                config=config,
            )
        return self._client

    def proof_path(self, profile_id: uuid.UUID, extension: str) -> str:
        """Object key for a participant's proof, e.g. 'payment-proofs/<id>/<hex>.pdf'."""
        return f"{self._settings.proof_folder}/{profile_id}/{uuid.uuid4().hex[:12]}.{extension}"

    def public_url(self, key: str) -> str:
        if self._settings.s3_endpoint_url:
            return f"{self._settings.s3_endpoint_url.rstrip('/')}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._settings.aws_region}.amazonaws.com/{key}"

    def key_from_locator(self, locator: str) -> str:
        """Extract the object key from a public URL (or pass a bare key through).

        Handles virtual-hosted AWS URLs (``https://<bucket>.s3.<region>.amazonaws.com/<key>``)
        and path-style endpoint URLs (``<endpoint>/<bucket>/<key>``).
        """
        if not locator.startswith("http"):
            return locator

        base = self.public_url("")
        if locator.startswith(base):
            return unquote(locator[len(base):])

        parts = urlsplit(locator)
        path = unquote(parts.path).lstrip("/")
        if parts.hostname and parts.hostname.startswith(f"{self._bucket}."):
            return path
        bucket_prefix = f"{self._bucket}/"
        if path.startswith(bucket_prefix):
            return path[len(bucket_prefix):]
        return path

    async def upload(self, buffer: bytes, path: str, content_type: str) -> str:
        """Upload a file and return its public URL.

        Raises:
            ExternalServiceError: Backend unreachable, timed out or refused the upload
        """
        try:
            await asyncio.to_thread(
                self.client.upload_fileobj,
                BytesIO(buffer),
                self._bucket,
                path,
                ExtraArgs={"ContentType": content_type, "ACL": "public-read"},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise ExternalServiceError("storage", "Failed to upload file") from e

        logger.info(f"Uploaded {path} ({len(buffer)} bytes)")
        return self.public_url(path)

    async def delete(self, locator: str | None) -> bool:
        """Delete a stored object, best-effort.

        Returns:
            bool: True if an object was deleted. Failures are logged, never raised.
        """
        if not locator or locator == WHATSAPP_PROOF:
            return False

        key = self.key_from_locator(locator)
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Failed to delete stored proof {key}: {e}")
            return False

        logger.info(f"Deleted stored proof {key}")
        return True
