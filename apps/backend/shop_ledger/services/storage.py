"""Object storage for rendered report artifacts."""

from __future__ import annotations

import threading
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from shop_ledger.config import settings
from shop_ledger.logger import get_logger, log_external_api

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""


def _client(endpoint: str, access_key: str, secret_key: str) -> Any:
    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=settings.s3_region,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


class StorageService:
    """S3/MinIO wrapper: upload report bytes, hand back a download URL."""

    _checked_buckets: set[str] = set()
    _bucket_lock = threading.Lock()

    def __init__(self, bucket: str | None = None) -> None:
        self.bucket = bucket or settings.s3_bucket
        self.client = _client(settings.s3_endpoint, settings.s3_access_key, settings.s3_secret_key)

        # URLs handed to API clients are signed against the public endpoint when one exists.
        self.public_client = None
        self.public_bucket = self.bucket
        if settings.s3_public_endpoint:
            self.public_bucket = settings.s3_public_bucket or self.bucket
            self.public_client = _client(
                settings.s3_public_endpoint,
                settings.s3_public_access_key or settings.s3_access_key,
                settings.s3_public_secret_key or settings.s3_secret_key,
            )

    def _ensure_bucket(self) -> None:
        with self._bucket_lock:
            if self.bucket in self._checked_buckets:
                return
            try:
                self.client.head_bucket(Bucket=self.bucket)
            except ClientError as exc:
                code = exc.response.get("Error", {}).get("Code")
                if code not in ("404", "NoSuchBucket", "NotFound"):
                    raise StorageError(f"Failed to access bucket {self.bucket}") from exc
                try:
                    if settings.s3_region and settings.s3_region != "us-east-1":
                        self.client.create_bucket(
                            Bucket=self.bucket,
                            CreateBucketConfiguration={"LocationConstraint": settings.s3_region},
                        )
                    else:
                        self.client.create_bucket(Bucket=self.bucket)
                except (BotoCoreError, ClientError) as create_exc:
                    raise StorageError(f"Failed to create bucket {self.bucket}") from create_exc
                logger.info("Created report bucket", bucket=self.bucket)
            except BotoCoreError as exc:
                raise StorageError(f"Failed to access bucket {self.bucket}") from exc
            self._checked_buckets.add(self.bucket)

    @log_external_api("s3")
    def upload_bytes(self, *, key: str, content: bytes, content_type: str | None = None) -> None:
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type
        self._ensure_bucket()
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=content, **extra_args)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to upload to S3", bucket=self.bucket, key=key, error=str(exc))
            raise StorageError(f"Failed to upload {key} to {self.bucket}") from exc

    def generate_presigned_url(self, *, key: str, expires_in: int | None = None) -> str:
        client = self.public_client or self.client
        bucket = self.public_bucket if self.public_client else self.bucket
        try:
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in or settings.s3_presign_expiry_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to generate presigned URL", bucket=bucket, key=key, error=str(exc))
            raise StorageError(f"Failed to generate presigned URL for {key}") from exc

    def delete_object(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to delete from S3", bucket=self.bucket, key=key, error=str(exc))
            raise StorageError(f"Failed to delete {key} from {self.bucket}") from exc

    def put(self, key: str, content: bytes, content_type: str) -> str:
        """Upload ``content`` and return a download URL for it.

        If the URL cannot be produced the object is removed again so no
        orphaned artifact is left behind.
        """
        self.upload_bytes(key=key, content=content, content_type=content_type)
        try:
            return self.generate_presigned_url(key=key)
        except StorageError:
            try:
                self.delete_object(key)
            except StorageError as cleanup_exc:
                logger.warning("Could not remove orphaned report object", key=key, error=str(cleanup_exc))
            raise
