"""
Reading, decoding and encoding raster images and data URLs.

Images are handled as BGRA numpy arrays (uint8), the way OpenCV loads them
with IMREAD_UNCHANGED.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import cv2
import numpy as np

from sprite_designer.constants import SUPPORTED_MIME_TYPES
from sprite_designer.errors import DataUrlError, ImageDecodeError

_MIME_BY_SUFFIX = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class ParsedDataUrl:
    mime_type: str
    data: bytes


def is_data_url(value: str | None) -> bool:
    return bool(value) and value.startswith("data:")


def parse_data_url(data_url: str, allowed_mime_types: tuple[str, ...] = SUPPORTED_MIME_TYPES) -> ParsedDataUrl:
    """
    Split a base64 image data URL into its mime type and payload.

    Args:
        data_url: URL of the form "data:image/png;base64,...."
        allowed_mime_types: Mime types to accept

    Returns:
        The parsed mime type and decoded bytes

    Raises:
        DataUrlError: If the URL is not a base64 data URL of an allowed image type.
    """
    if not is_data_url(data_url):
        raise DataUrlError("expected a data URL with image payload")

    metadata, sep, payload = data_url.partition(",")
    if not sep:
        raise DataUrlError("invalid data URL format")
    if ";base64" not in metadata:
        raise DataUrlError("data URL must be base64 encoded")

    mime_type = metadata[len("data:"):].split(";", 1)[0].lower()
    if mime_type not in allowed_mime_types:
        allowed = ", ".join(allowed_mime_types)
        raise DataUrlError(f"unsupported image mime type: {mime_type or '(none)'}. allowed: {allowed}")

    try:
        data = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DataUrlError(f"invalid base64 payload: {e}") from e
    return ParsedDataUrl(mime_type=mime_type, data=data)


def encode_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def read_image_path_as_data_url(path: str | Path) -> str:
    """
    Read an image file into a data URL, choosing the mime type by extension.

    Raises:
        ImageDecodeError: If the file does not exist or cannot be read.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"image path not found: {path}", str(path)) from e
    return encode_data_url(data, _MIME_BY_SUFFIX.get(path.suffix.lower(), "image/png"))


def _describe_source(src: str) -> str:
    if is_data_url(src):
        return src[:48] + "..."
    return src


def load_image_bytes(src: str) -> bytes:
    """Read the encoded bytes behind a data URL, file:// URL or filesystem path."""
    if is_data_url(src):
        try:
            return parse_data_url(src).data
        except DataUrlError as e:
            raise ImageDecodeError(str(e), _describe_source(src)) from e

    path = src
    if src.startswith("file://"):
        path = unquote(urlparse(src).path)
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"could not read image {path}: {e}", src) from e


def to_bgra(image: np.ndarray) -> np.ndarray:
    """Convert a grayscale, BGR or BGRA uint8 image to BGRA."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def decode_image(src: str) -> np.ndarray:
    """
    Decode an image source into a BGRA array.

    Args:
        src: Data URL, file:// URL or filesystem path

    Raises:
        ImageDecodeError: If the source cannot be read or is not a decodable image.
    """
    data = load_image_bytes(src)
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if image is None:
        raise ImageDecodeError("image data could not be decoded", _describe_source(src))
    if image.dtype != np.uint8:
        # 16-bit PNGs
        image = (image // 257).astype(np.uint8)
    return to_bgra(image)


async def decode_image_async(src: str) -> np.ndarray:
    """Decode an image source in a worker thread without blocking the event loop."""
    return await asyncio.to_thread(decode_image, src)


def encode_png(image: np.ndarray) -> bytes:
    """
    Encode an image as PNG bytes.

    Raises:
        ValueError: If OpenCV refuses to encode the array.
    """
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ValueError(f"could not encode image of shape {image.shape} as PNG")
    return buffer.tobytes()
