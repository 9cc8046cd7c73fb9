"""
S3 storage for uploaded card PDFs.
"""

import logging
import secrets
import time
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger()

FOLDER = "cards"
RAW_CONTENT_TYPE = "application/octet-stream"
S3_CONFIG = Config(signature_version="s3v4", s3={"addressing_style": "virtual"})


class UploadError(Exception):
    """The storage provider rejected or failed an upload."""


def create_client(settings):
    """S3 client for the configured region and credentials."""
    kwargs = {}
    if settings.access_key_id:
        kwargs["aws_access_key_id"] = settings.access_key_id
        kwargs["aws_secret_access_key"] = settings.secret_access_key

    return boto3.client(
        "s3",
        region_name=settings.region,
        endpoint_url=f"https://s3.{settings.region}.amazonaws.com",
        config=S3_CONFIG,
        **kwargs,
    )


def make_object_key(now_ms: int | None = None) -> str:
    """Key of the form cards/card_<unix-millis>-<random hex>."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{FOLDER}/card_{now_ms}-{secrets.token_hex(6)}"


def upload_raw(s3, settings, key: str, data: bytes, metadata: dict | None = None) -> str:
    """Store data under key and return its URL."""
    try:
        s3.put_object(
            Bucket=settings.bucket_name,
            Key=key,
            Body=data,
            ContentType=RAW_CONTENT_TYPE,
            Metadata=_clean_metadata(metadata or {}),
        )
        url = file_url(s3, settings, key)
    except (ClientError, BotoCoreError) as exc:
        raise UploadError(f"Failed to store s3://{settings.bucket_name}/{key}") from exc

    logger.info("Stored %s bytes at s3://%s/%s", len(data), settings.bucket_name, key)
    return url


def file_url(s3, settings, key: str) -> str:
    """URL handed back to callers for a stored object."""
    if settings.file_url_expires_in > 0:
        return s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.bucket_name, "Key": key},
            ExpiresIn=settings.file_url_expires_in,
        )

    if settings.public_base_url:
        return f"{settings.public_base_url}/{quote(key)}"

    return f"https://{settings.bucket_name}.s3.{settings.region}.amazonaws.com/{quote(key)}"


def _clean_metadata(metadata: dict) -> dict:
    # S3 user metadata travels as HTTP headers: ASCII only.
    cleaned = {}
    for key, value in metadata.items():
        if value is None:
            continue
        cleaned[key] = str(value).encode("ascii", errors="replace").decode("ascii")
    return cleaned
