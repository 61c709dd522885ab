"""Durable photo storage backends.

Objects are addressed by a path inside a bucket and read back through a
public URL containing ``/storage/v1/object/public/{bucket}/``; that marker is
how a stored URL is turned back into a path for deletion.
"""
import asyncio
import logging
import os
from typing import Protocol
from urllib.parse import quote, unquote

import httpx

from sitecheck.config import Settings
from sitecheck.utils.exceptions import DeleteError, UploadError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/storage/v1/object/public/"


def public_marker(bucket: str) -> str:
    return f"{PUBLIC_PREFIX}{bucket}/"


def path_from_url(url: str, bucket: str) -> str | None:
    """Recover the object path from a public URL, or None if it is not ours."""
    marker = public_marker(bucket)
    idx = url.find(marker)
    if idx < 0:
        return None
    path = url[idx + len(marker):].split("?", 1)[0]
    return unquote(path) or None


class PhotoStorage(Protocol):
    bucket: str

    async def upload(self, path: str, content: bytes, content_type: str) -> None: ...

    def public_url(self, path: str) -> str: ...

    async def remove(self, paths: list[str]) -> None: ...


class FilesystemPhotoStorage:
    """Stores objects under ``{root}/{bucket}``; the app serves them statically."""

    def __init__(self, root: str, bucket: str, base_url: str):
        self.bucket = bucket
        self.directory = os.path.abspath(os.path.join(root, bucket))
        self.base_url = base_url.rstrip("/")

    def _target(self, path: str) -> str:
        target = os.path.abspath(os.path.join(self.directory, path))
        if os.path.commonpath([target, self.directory]) != self.directory:
            raise ValueError(f"path escapes bucket: {path}")
        return target

    @staticmethod
    def _write(target: str, content: bytes) -> None:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as f:
            f.write(content)

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        try:
            # overwrite on conflict
            await asyncio.to_thread(self._write, self._target(path), content)
        except (OSError, ValueError) as e:
            raise UploadError(f"Falha no upload de {path}: {e}") from e

    def public_url(self, path: str) -> str:
        return f"{self.base_url}{public_marker(self.bucket)}{quote(path)}"

    async def remove(self, paths: list[str]) -> None:
        for path in paths:
            try:
                await asyncio.to_thread(os.remove, self._target(path))
            except FileNotFoundError:
                logger.debug("Photo %s already absent", path)
            except (OSError, ValueError) as e:
                raise DeleteError(f"Falha ao remover {path}: {e}") from e


class HttpPhotoStorage:
    """Supabase-compatible storage REST API over httpx."""

    def __init__(
        self,
        base_url: str,
        bucket: str,
        service_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.service_key = service_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.service_key:
            headers["Authorization"] = f"Bearer {self.service_key}"
            headers["apikey"] = self.service_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/storage/v1/object/{self.bucket}/{quote(path)}",
                    content=content,
                    headers={"Content-Type": content_type, "x-upsert": "true"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise UploadError(f"Falha no upload de {path}: {e}") from e

    def public_url(self, path: str) -> str:
        return f"{self.base_url}{public_marker(self.bucket)}{quote(path)}"

    async def remove(self, paths: list[str]) -> None:
        try:
            async with self._client() as client:
                response = await client.request(
                    "DELETE",
                    f"/storage/v1/object/{self.bucket}",
                    json={"prefixes": paths},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeleteError(f"Falha ao remover {', '.join(paths)}: {e}") from e


def storage_directory(settings: Settings) -> str:
    return os.path.join(settings.data_dir, "storage")


def build_storage(settings: Settings) -> PhotoStorage:
    if settings.storage_backend == "http":
        if not settings.storage_url:
            raise ValueError("storage_url is required for the http storage backend")
        return HttpPhotoStorage(settings.storage_url, settings.storage_bucket, settings.storage_service_key)
    return FilesystemPhotoStorage(
        storage_directory(settings), settings.storage_bucket, settings.public_base_url,
    )
