"""Filesystem-backed object storage.

Buckets are directories under the storage root. Signed URLs carry an expiry
and an HMAC over bucket, path and expiry; they stop verifying once expired and
a fresh one has to be requested.
"""

import asyncio
import base64
import hashlib
import hmac
import time
from pathlib import Path
from typing import Protocol
from urllib.parse import parse_qs, quote, unquote, urlparse

from ..config import (
    SIGNED_URL_TTL_SECONDS,
    resolve_storage_dir,
    storage_public_base_url,
    storage_signing_secret,
)
from ..logging_config import get_logger

logger = get_logger(__name__)


class IObjectStorage(Protocol):
    """Binary storage with public and signed URLs."""

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str | None = None
    ) -> dict:
        """Store a binary; returns {"path", "size", "content_type"}."""
        ...

    async def download(self, bucket: str, path: str) -> bytes:
        """Read a binary back."""
        ...

    async def remove(self, bucket: str, paths: list[str]) -> list[str]:
        """Remove binaries; returns the paths that existed."""
        ...

    def create_signed_url(
        self, bucket: str, path: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS
    ) -> str:
        """Time-limited URL for a private binary."""
        ...

    def get_public_url(self, bucket: str, path: str) -> str:
        """Permanent URL for a binary."""
        ...


class LocalObjectStorage:
    """Object storage on the local filesystem."""

    def __init__(
        self,
        root: str | Path | None = None,
        secret: str | None = None,
        base_url: str | None = None,
        clock=time.time,
    ):
        self._root = resolve_storage_dir(root)
        self._secret = (secret or storage_signing_secret()).encode("utf-8")
        self._base_url = (base_url or storage_public_base_url()).rstrip("/")
        self._clock = clock

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str | None = None
    ) -> dict:
        """Store a binary. Existing paths are never overwritten."""
        target = self._resolve(bucket, path)
        if target.exists():
            raise FileExistsError(f"Object already exists: {bucket}/{path}")

        await asyncio.to_thread(self._write, target, data)
        logger.info(
            "Stored object %s (%d bytes)", path, len(data), extra={"bucket": bucket}
        )
        return {"path": path, "size": len(data), "content_type": content_type}

    async def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.exists():
            raise FileNotFoundError(f"Object not found: {bucket}/{path}")
        return await asyncio.to_thread(target.read_bytes)

    async def remove(self, bucket: str, paths: list[str]) -> list[str]:
        removed = []
        for path in paths:
            target = self._resolve(bucket, path)
            if target.exists():
                await asyncio.to_thread(target.unlink)
                removed.append(path)
        return removed

    def create_signed_url(
        self, bucket: str, path: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS
    ) -> str:
        expires = int(self._clock()) + ttl_seconds
        token = self._sign(bucket, path, expires)
        return (
            f"{self._base_url}/object/sign/{bucket}/{quote(path)}"
            f"?token={token}&expires={expires}"
        )

    def verify_signed_url(self, url: str) -> bool:
        """True while the URL is unexpired and its token matches."""
        parsed = urlparse(url)
        prefix = "/object/sign/"
        marker = parsed.path.find(prefix)
        if marker < 0:
            return False

        bucket, _, path = parsed.path[marker + len(prefix):].partition("/")
        query = parse_qs(parsed.query)
        try:
            token = query["token"][0]
            expires = int(query["expires"][0])
        except (KeyError, IndexError, ValueError):
            return False

        if expires < self._clock():
            return False
        expected = self._sign(bucket, unquote(path), expires)
        return hmac.compare_digest(token, expected)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self._base_url}/object/public/{bucket}/{quote(path)}"

    def _sign(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode("utf-8")
        digest = hmac.new(self._secret, message, hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_root = (self._root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise ValueError(f"Path escapes bucket: {path}")
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
