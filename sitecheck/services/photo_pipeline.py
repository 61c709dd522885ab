"""Photo slot pipeline: capture, compress, upload, fall back, remove.

Each stage is awaited in turn and the whole run ends in a ``PhotoResult``.
Failures in compression, upload or deletion never escape ``resolve`` or
``remove``; they become a fallback status or a log line.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from sitecheck.schemas.photo import PhotoRef, PhotoState, is_remote, photo_state
from sitecheck.services.image_compression import (
    CompressedImage,
    compress_image,
    decode_data_url,
    encode_data_url,
)
from sitecheck.services.storage import PhotoStorage, path_from_url
from sitecheck.utils.exceptions import CaptureError, CompressionError, DeleteError, UploadError

logger = logging.getLogger(__name__)

PROGRESS_ACCEPTED = 10
PROGRESS_COMPRESSED = 40
PROGRESS_UPLOADING = 60
PROGRESS_UPLOADED = 90
PROGRESS_DONE = 100

ProgressCallback = Callable[[int], None]


class PhotoStatus(str, Enum):
    EMPTY = "empty"
    REMOTE = "remote"
    FALLBACK = "fallback"
    LOCAL = "local"
    FAILED = "failed"


@dataclass(frozen=True)
class PhotoResult:
    status: PhotoStatus
    value: PhotoRef
    error: Optional[str] = None


class ProgressTracker:
    """Forwards percentages to a callback, dropping any that would go backwards."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.value = 0

    def report(self, percent: int) -> None:
        if percent <= self.value:
            return
        self.value = percent
        if self._callback is not None:
            self._callback(percent)


def upload_site_code(site_code: Optional[str]) -> Optional[str]:
    """Only a complete 5-character site code names an upload folder."""
    if site_code and len(site_code) == 5:
        return site_code
    return None


def build_photo_path(site_code: str, category: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{site_code}/{now.strftime('%Y-%m-%d')}/{category}_{uuid.uuid4().hex[:8]}.jpg"


class PhotoPipeline:
    def __init__(
        self,
        storage: PhotoStorage,
        target_kb: int = 500,
        fallback_kb: int = 400,
        max_input_bytes: int = 20 * 1024 * 1024,
        compress: Callable[[bytes, int], CompressedImage] = compress_image,
    ):
        self.storage = storage
        self.target_kb = target_kb
        self.fallback_kb = fallback_kb
        self.max_input_bytes = max_input_bytes
        self._compress_fn = compress

    def capture(self, content: bytes, content_type: Optional[str]) -> str:
        """Accept raw file bytes as a local-pending value."""
        if not content_type or not content_type.startswith("image/"):
            raise CaptureError("Selecione um arquivo de imagem", status_code=415)
        if len(content) > self.max_input_bytes:
            limit_mb = self.max_input_bytes // (1024 * 1024)
            raise CaptureError(f"Imagem muito grande (máximo {limit_mb}MB)", status_code=413)
        if not content:
            raise CaptureError("Arquivo vazio", status_code=400)
        return encode_data_url(content, content_type)

    async def _compress(self, content: bytes, target_kb: int) -> Optional[CompressedImage]:
        try:
            return await asyncio.to_thread(self._compress_fn, content, target_kb)
        except CompressionError as e:
            logger.warning("Compression failed, keeping original payload: %s", e.message)
            return None
        except Exception:
            # an undecodable payload is still uploaded as captured
            logger.exception("Unexpected compression error, keeping original payload")
            return None

    async def resolve(
        self,
        value: PhotoRef,
        site_code: Optional[str] = None,
        category: str = "photo",
        on_progress: Optional[ProgressCallback] = None,
    ) -> PhotoResult:
        """Drive one slot value to a durable URL, or to the best local value available."""
        progress = ProgressTracker(on_progress)
        try:
            state = photo_state(value)
        except ValueError as e:
            return PhotoResult(PhotoStatus.FAILED, value, str(e))

        if state is PhotoState.EMPTY:
            return PhotoResult(PhotoStatus.EMPTY, None)
        if state is PhotoState.REMOTE:
            progress.report(PROGRESS_DONE)
            return PhotoResult(PhotoStatus.REMOTE, value)

        progress.report(PROGRESS_ACCEPTED)
        try:
            content_type, original = decode_data_url(value)
        except ValueError as e:
            logger.warning("Unreadable local photo for %s: %s", category, e)
            return PhotoResult(PhotoStatus.FAILED, value, str(e))

        target_kb = self.target_kb if site_code else self.fallback_kb
        compressed = await self._compress(original, target_kb)
        progress.report(PROGRESS_COMPRESSED)
        if compressed is not None:
            payload, payload_type = compressed.content, compressed.content_type
        else:
            payload, payload_type = original, content_type

        if not site_code:
            progress.report(PROGRESS_DONE)
            local = encode_data_url(payload, payload_type) if compressed else value
            return PhotoResult(PhotoStatus.LOCAL, local)

        path = build_photo_path(site_code, category)
        progress.report(PROGRESS_UPLOADING)
        try:
            await self.storage.upload(path, payload, payload_type)
        except UploadError as e:
            logger.warning("Upload of %s failed, keeping local copy: %s", path, e.message)
            progress.report(PROGRESS_DONE)
            return PhotoResult(PhotoStatus.FALLBACK, encode_data_url(payload, payload_type), e.message)

        progress.report(PROGRESS_UPLOADED)
        url = self.storage.public_url(path)
        logger.info("Uploaded %s (%d bytes)", path, len(payload))
        progress.report(PROGRESS_DONE)
        return PhotoResult(PhotoStatus.REMOTE, url)

    async def remove(self, value: PhotoRef) -> PhotoRef:
        """Best-effort delete of a durable value; the slot is empty afterwards either way."""
        if is_remote(value):
            path = path_from_url(value, self.storage.bucket)
            if path is None:
                logger.warning("Photo URL outside bucket %s, not deleting: %s", self.storage.bucket, value)
            else:
                try:
                    await self.storage.remove([path])
                    logger.info("Deleted %s", path)
                except DeleteError as e:
                    logger.warning("Delete of %s failed: %s", path, e.message)
        return None
