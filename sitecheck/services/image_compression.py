"""Shrink captured photos toward a target encoded size with Pillow."""
import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from sitecheck.utils.exceptions import CompressionError

logger = logging.getLogger(__name__)

# (format, quality, longest side) tried in order; the first result under the
# target wins, otherwise the smallest one produced
ATTEMPTS: tuple[tuple[str, int, int], ...] = (
    ("JPEG", 90, 1920),
    ("JPEG", 80, 1600),
    ("JPEG", 70, 1280),
    ("JPEG", 60, 1024),
    ("JPEG", 50, 800),
    ("JPEG", 40, 640),
    ("WEBP", 60, 1024),
    ("WEBP", 50, 800),
)

_CONTENT_TYPES = {"JPEG": "image/jpeg", "WEBP": "image/webp"}


@dataclass(frozen=True)
class CompressedImage:
    content: bytes
    content_type: str
    format: str
    quality: int
    max_side: int

    @property
    def size_kb(self) -> float:
        return len(self.content) / 1024


def decode_data_url(value: str) -> tuple[str, bytes]:
    """Split ``data:<type>;base64,<payload>`` into content type and bytes."""
    header, sep, payload = value.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("not a base64 data URL")
    content_type = header[5:].split(";", 1)[0] or "application/octet-stream"
    try:
        return content_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


def encode_data_url(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


def _open(content: bytes) -> Image.Image:
    # corrupt files surface as any of these depending on the decoder
    try:
        image = Image.open(BytesIO(content))
        image.load()
        image = ImageOps.exif_transpose(image)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise CompressionError(f"Imagem ilegível: {e}") from e
    return image


def _encode(image: Image.Image, fmt: str, quality: int, max_side: int) -> bytes:
    resized = image.copy()
    resized.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
    buf = BytesIO()
    options = {"quality": quality}
    if fmt == "JPEG":
        options["optimize"] = True
    resized.save(buf, format=fmt, **options)
    return buf.getvalue()


def compress_image(content: bytes, target_kb: int) -> CompressedImage:
    """Run the attempt chain and return the first result at or under ``target_kb``.

    When no attempt reaches the target the smallest result is returned. Raises
    ``CompressionError`` if the input cannot be decoded or every attempt fails.
    """
    image = _open(content)
    target = target_kb * 1024
    best: CompressedImage | None = None

    for fmt, quality, max_side in ATTEMPTS:
        try:
            data = _encode(image, fmt, quality, max_side)
        except (OSError, ValueError, SyntaxError) as e:
            logger.warning("Compression attempt %s q%d@%d failed: %s", fmt, quality, max_side, e)
            continue

        candidate = CompressedImage(data, _CONTENT_TYPES[fmt], fmt, quality, max_side)
        if len(data) <= target:
            logger.debug(
                "Compressed %d bytes to %.1fKB with %s q%d@%d",
                len(content), candidate.size_kb, fmt, quality, max_side,
            )
            return candidate
        if best is None or len(data) < len(best.content):
            best = candidate

    if best is None:
        raise CompressionError("Falha ao comprimir imagem")

    logger.info(
        "No attempt reached %dKB, using smallest result %.1fKB (%s q%d@%d)",
        target_kb, best.size_kb, best.format, best.quality, best.max_side,
    )
    return best
