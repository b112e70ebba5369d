from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from pdfquiz.errors import StoreError
from pdfquiz.utils.logging_config import get_logger

logger = get_logger(__name__)

MAX_FILE_SIZE_MB = 150


class DocumentStore(Protocol):
    async def list(self, limit: int) -> List[str]:
        ...

    async def download(self, source_id: str) -> bytes:
        ...


def storage_settings() -> Dict[str, str]:
    settings = {
        "endpoint_url": os.getenv("SUPABASE_S3_ENDPOINT", ""),
        "region": os.getenv("SUPABASE_S3_REGION", ""),
        "bucket": os.getenv("SUPABASE_S3_BUCKET", os.getenv("AGENT_STORAGE_BUCKET", "")),
        "access_key": os.getenv("SUPABASE_S3_ACCESS_KEY", ""),
        "secret_key": os.getenv("SUPABASE_S3_SECRET_KEY", ""),
    }
    missing = [key for key, value in settings.items() if not value]
    if missing:
        raise RuntimeError(f"Missing Supabase storage settings: {', '.join(missing)}")
    return settings


class SupabaseDocumentStore:
    """PDF bucket on Supabase storage through its S3-compatible endpoint."""

    def __init__(self, settings: Optional[Dict[str, str]] = None, *, client: Any = None, max_file_size_mb: int = MAX_FILE_SIZE_MB) -> None:
        cfg = settings or storage_settings()
        self.bucket = cfg["bucket"]
        self.max_bytes = max_file_size_mb * 1024 * 1024
        self._client = client or boto3.client(
            "s3",
            endpoint_url=cfg["endpoint_url"],
            region_name=cfg["region"],
            aws_access_key_id=cfg["access_key"],
            aws_secret_access_key=cfg["secret_key"],
            config=Config(signature_version="s3v4"),
        )

    def _list_keys(self, limit: int) -> List[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: List[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=""):
            for item in page.get("Contents", []):
                key = item.get("Key")
                if not key or key.endswith("/"):
                    continue
                keys.append(key)
                if len(keys) >= limit:
                    return keys
        return keys

    def _download(self, key: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=key)
        content_length = response.get("ContentLength")
        if content_length and content_length > self.max_bytes:
            raise ValueError(f"Object '{key}' is {content_length} bytes which exceeds limit of {self.max_bytes} bytes")
        body = response.get("Body")
        if body is None:
            raise ValueError(f"Missing response body for '{key}'")
        return body.read()

    async def list(self, limit: int) -> List[str]:
        try:
            return await asyncio.to_thread(self._list_keys, limit)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to list bucket {self.bucket}: {exc}") from exc

    async def download(self, source_id: str) -> bytes:
        logger.info("Downloading %s from bucket %s", source_id, self.bucket)
        try:
            return await asyncio.to_thread(self._download, source_id)
        except (BotoCoreError, ClientError, ValueError) as exc:
            raise StoreError(f"Failed to download {source_id}: {exc}") from exc


class LocalDocumentStore:
    """Directory of PDFs; document ids are file names relative to the directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise RuntimeError(f"Document directory not found: {self.directory}")

    async def list(self, limit: int) -> List[str]:
        try:
            names = sorted(path.name for path in self.directory.iterdir() if path.is_file() and path.suffix.lower() == ".pdf")
        except OSError as exc:
            raise StoreError(f"Failed to list {self.directory}: {exc}") from exc
        return names[:limit]

    async def download(self, source_id: str) -> bytes:
        path = self.directory / source_id
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise StoreError(f"Failed to read {path}: {exc}") from exc


__all__ = ["DocumentStore", "SupabaseDocumentStore", "LocalDocumentStore", "storage_settings"]
