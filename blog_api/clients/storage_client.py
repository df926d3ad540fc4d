"""
MinIO (S3-compatible) client for post cover images.

Objects are written once under a random key and served through a public
bucket policy, so the URL stored on a post never expires.
"""
import json
import logging
from io import BytesIO
from typing import Optional

import boto3
from botocore.client import Config

from blog_api.config import Settings

logger = logging.getLogger(__name__)


def _public_read_policy(bucket: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


class ObjectStorage:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._s3 = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            config=Config(signature_version="s3v4"),
            region_name="us-east-1",
        )
        self.public_base_url = (
            settings.storage_public_base_url or settings.storage_endpoint_url
        ).rstrip("/")

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket with a public-read policy if it is missing."""
        existing = [b["Name"] for b in self._s3.list_buckets().get("Buckets", [])]
        if bucket in existing:
            logger.info("Storage bucket '%s' already exists", bucket)
            return
        self._s3.create_bucket(Bucket=bucket)
        self._s3.put_bucket_policy(Bucket=bucket, Policy=_public_read_policy(bucket))
        logger.info("Created public storage bucket '%s'", bucket)

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str],
        upsert: bool = False,
    ) -> str:
        """Store ``data`` under ``key`` and return the object path."""
        params = {
            "Bucket": bucket,
            "Key": key,
            "Body": BytesIO(data),
            "ContentType": content_type or "application/octet-stream",
        }
        if not upsert:
            # Conditional write: fails with PreconditionFailed if the key exists
            params["IfNoneMatch"] = "*"
        self._s3.put_object(**params)
        logger.debug("Uploaded object to %s/%s", bucket, key)
        return key

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"


def init_storage(settings: Settings) -> ObjectStorage:
    """Create the storage client and make sure the image bucket exists."""
    storage = ObjectStorage(settings)
    storage.ensure_bucket(settings.storage_bucket)
    return storage
