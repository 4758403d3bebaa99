"""S3 access-point uploads used as the media fallback."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import posixpath
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...errors import UploadFailed
from ...models import DownloadedFile
from ...settings import S3Settings
from ..base import FallbackUploader

_LOGGER = logging.getLogger(__name__)


def _client(region: str) -> Any:
    return boto3.client("s3", region_name=region)


def upload_file_s3(
    content: bytes,
    path: str,
    access_point: str,
    account_id: str,
    bucket: str,
    region: str = "us-west-2",
    content_type: str | None = None,
    *,
    s3_client: Any | None = None,
) -> str:
    """Put ``content`` under ``path`` through an access point and return its public URL."""
    key = path.lstrip("/")
    params: dict[str, Any] = {
        "Bucket": f"arn:aws:s3:{region}:{account_id}:accesspoint/{access_point}",
        "Key": key,
        "Body": content,
        "StorageClass": "STANDARD_IA",
    }
    if content_type:
        params["ContentType"] = content_type
    (s3_client or _client(region)).put_object(**params)
    return f"https://{bucket}.s3-{region}.amazonaws.com/{key}"


def guess_content_type(file: DownloadedFile) -> str | None:
    if file.content_type:
        return file.content_type.split(";", 1)[0].strip() or None
    guessed, _ = mimetypes.guess_type(file.url)
    return guessed


def create_upload_function(
    path_prefix: str,
    settings: S3Settings,
    *,
    s3_client: Any | None = None,
) -> FallbackUploader:
    """Bind an uploader to one bucket; keys are ``<prefix>/<file id><ext>``."""

    async def upload(file: DownloadedFile, file_id: str) -> str:
        content_type = guess_content_type(file)
        extension = mimetypes.guess_extension(content_type) if content_type else None
        pathname = posixpath.join(path_prefix, f"{file_id}{extension or ''}")
        try:
            url = await asyncio.to_thread(
                upload_file_s3,
                file.content,
                pathname,
                settings.access_point,
                settings.account_id,
                settings.bucket,
                settings.region,
                content_type,
                s3_client=s3_client,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadFailed(pathname, cause=exc) from exc
        _LOGGER.debug("Stored %s at %s", file.url, url)
        return url

    return upload


__all__ = ["create_upload_function", "guess_content_type", "upload_file_s3"]
