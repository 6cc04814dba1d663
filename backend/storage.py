"""Object storage access for card assets and generated PDFs.

Supabase exposes its storage buckets through an S3-compatible endpoint, so the
service talks to it with a plain boto3 S3 client.
"""
from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from errors import NotFoundError, StorageError
from settings import Settings


logger = logging.getLogger(__name__)

_STORAGE_OBJECT_PATH = re.compile(
    r"/storage/v1/object/(?:public/|sign/|authenticated/)?(?P<bucket>[^/]+)/(?P<path>.+)$"
)
_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def create_s3_client(settings: Settings):
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint,
        region_name=settings.storage_region,
        config=Config(s3={"addressing_style": "path"}, signature_version="s3v4"),
    )


class CardStorage:
    def __init__(self, s3_client, bucket: str, public_base_url: str, signed_url_ttl: int = 3600) -> None:
        self._s3 = s3_client
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._signed_url_ttl = signed_url_ttl

    @classmethod
    def from_settings(cls, settings: Settings, s3_client=None) -> "CardStorage":
        return cls(
            s3_client or create_s3_client(settings),
            settings.storage_bucket,
            settings.public_object_url,
            settings.signed_url_ttl,
        )

    def path_from_url(self, url: str) -> Optional[str]:
        """Return the object path when ``url`` points into this bucket."""
        parsed = urllib.parse.urlsplit(url or "")
        if parsed.scheme not in ("http", "https"):
            return None

        match = _STORAGE_OBJECT_PATH.search(parsed.path)
        if match and match.group("bucket") == self._bucket:
            return urllib.parse.unquote(match.group("path"))

        parts = [p for p in parsed.path.split("/") if p]
        if self._bucket in parts:
            idx = parts.index(self._bucket)
            if idx < len(parts) - 1:
                return urllib.parse.unquote("/".join(parts[idx + 1:]))
        return None

    def download(self, path: str) -> Tuple[bytes, Optional[str]]:
        """Return ``(bytes, content_type)`` for a stored object."""
        key = path.lstrip("/")
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read(), response.get("ContentType")
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                raise NotFoundError(f"Object not found: {key}") from exc
            raise StorageError(f"Download failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Download failed for {key}: {exc}") from exc

    def upload_pdf(self, path: str, pdf_bytes: bytes) -> None:
        # S3 puts overwrite an existing key, matching upsert semantics.
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=path,
                Body=pdf_bytes,
                ContentType="application/pdf",
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Upload failed: {exc}") from exc
        logger.info("Uploaded %s (%d bytes) to bucket %s", path, len(pdf_bytes), self._bucket)

    def create_signed_url(self, path: str, expires_in: Optional[int] = None) -> Optional[str]:
        try:
            return self._s3.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self._bucket,
                    "Key": path,
                    "ResponseContentType": "application/pdf",
                },
                ExpiresIn=expires_in or self._signed_url_ttl,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to generate signed URL for %s: %s", path, exc)
            return None

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{urllib.parse.quote(path)}"
