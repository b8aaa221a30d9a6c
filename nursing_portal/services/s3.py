"""AWS S3: student documents and study resources."""
import asyncio
import logging

import boto3
from botocore.exceptions import ClientError

from nursing_portal.config import settings

logger = logging.getLogger(__name__)

_s3 = None


def get_s3():
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
    return _s3


def public_url(key: str, bucket: str = settings.s3_bucket_files) -> str:
    return f"https://{bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"


def _put_sync(key: str, body: bytes, content_type: str, bucket: str) -> None:
    get_s3().put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)


async def upload_bytes(
    key: str,
    body: bytes,
    content_type: str = "application/octet-stream",
    bucket: str = settings.s3_bucket_files,
) -> str:
    """Upload under `key`; return the retrieval URL."""
    await asyncio.to_thread(_put_sync, key, body, content_type, bucket)
    return public_url(key, bucket)


async def delete_from_s3(key: str, bucket: str = settings.s3_bucket_files) -> None:
    """Delete object from S3. A missing object is not an error."""
    try:
        await asyncio.to_thread(get_s3().delete_object, Bucket=bucket, Key=key)
    except ClientError as e:
        logger.warning(f"S3 delete failed for {key}: {e}")
