"""Private bucket holding shared file bytes.

Objects are never public: readers only ever receive presigned GET URLs.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

from sharepod.config import settings

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey"})
MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket"})


class ObjectStorageError(Exception):
    """Object store call failed."""


class ObjectNotFoundError(ObjectStorageError):
    """Object key does not exist in the bucket."""


class StorageService(Protocol):
    """What the share services need from object storage."""

    def upload(self, key: str, data: bytes, content_type: str | None) -> None: ...

    def delete(self, key: str) -> None: ...

    def presign(self, key: str, ttl_seconds: int, download_filename: str) -> str: ...


def build_content_disposition(filename: str) -> str:
    quoted = filename.replace('"', "").replace("\r", "").replace("\n", "")
    ascii_name = quoted.encode("ascii", "replace").decode("ascii").replace("?", "_")
    if ascii_name == quoted:
        return f'attachment; filename="{quoted}"'
    # RFC 5987 form carries the non-ASCII name
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(quoted, safe='')}"


def client_error_code(exc: Exception) -> str:
    """botocore ClientError code, or an empty string for anything else."""
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return ""
    error = response.get("Error")
    if not isinstance(error, dict):
        return ""
    return str(error.get("Code", ""))


def build_s3_client(
    endpoint_url: str,
    access_key: str | None,
    secret_key: str | None,
    region: str,
) -> Any:
    try:
        import boto3
    except ImportError as exc:
        raise ObjectStorageError("boto3 is required for S3 storage") from exc
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
    )


class S3ShareStorage:
    """Share files on an S3-compatible bucket (S3, MinIO, R2)."""

    def __init__(self, bucket_name: str, *, client: Any, region: str = "us-east-1") -> None:
        self.bucket_name = bucket_name
        self.client = client
        self.region = region

    def ensure_bucket(self) -> None:
        """Create the bucket on first start; no-op when it already exists."""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
        except Exception as exc:
            if client_error_code(exc) not in MISSING_BUCKET_CODES:
                raise ObjectStorageError(f"Cannot reach bucket {self.bucket_name}") from exc
        else:
            return

        params: dict[str, Any] = {"Bucket": self.bucket_name}
        if self.region and self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self.client.create_bucket(**params)
        logger.info("share_bucket_created bucket=%s", self.bucket_name)

    def upload(self, key: str, data: bytes, content_type: str | None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket_name, Key=key, Body=data, **extra)
        except Exception as exc:
            raise ObjectStorageError(f"Upload failed for {key}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except Exception as exc:
            if client_error_code(exc) in MISSING_OBJECT_CODES:
                raise ObjectNotFoundError(key) from exc
            raise ObjectStorageError(f"Delete failed for {key}") from exc

    def presign(self, key: str, ttl_seconds: int, download_filename: str) -> str:
        """Time-limited GET URL that saves as ``download_filename``."""
        params = {
            "Bucket": self.bucket_name,
            "Key": key,
            "ResponseContentDisposition": build_content_disposition(download_filename),
        }
        try:
            return self.client.generate_presigned_url(
                "get_object", Params=params, ExpiresIn=ttl_seconds
            )
        except Exception as exc:
            raise ObjectStorageError(f"Presign failed for {key}") from exc


@lru_cache(maxsize=1)
def get_share_storage() -> S3ShareStorage:
    client = build_s3_client(
        settings.s3_endpoint_url,
        settings.s3_access_key,
        settings.s3_secret_key,
        settings.s3_region,
    )
    return S3ShareStorage(settings.s3_bucket_name, client=client, region=settings.s3_region)


def ensure_share_bucket() -> None:
    get_share_storage().ensure_bucket()
