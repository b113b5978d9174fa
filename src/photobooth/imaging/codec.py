"""
Image Codec
===========

Dedicated module for encoding and decoding images with OpenCV.

Design Rules:
    - This is the ONLY place in the codebase that calls imdecode/imencode
    - Validates shape and dtype
    - Fails fast on corrupt images
    - Data URIs are the interchange format for stored and uploaded images

Formats:
    - Captured photos: JPEG, quality 90
    - Composite strip: PNG (lossless)
    - User overlays: WebP with alpha, quality 80
"""

import base64
import binascii
import logging
from typing import Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image decoding fails."""
    pass


_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def decode_image(data: bytes, keep_alpha: bool = False) -> np.ndarray:
    """
    Decode encoded image bytes to a numpy array.

    Grayscale input is promoted to BGR. With keep_alpha, the result is
    BGRA when the source carries an alpha channel and BGR otherwise.

    Args:
        data: Encoded image (JPEG, PNG, WebP, ...)
        keep_alpha: Preserve the alpha channel if present

    Returns:
        Image as np.ndarray (H, W, 3) or (H, W, 4), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    if not data:
        raise ImageDecodeError("Empty image data")

    nparr = np.frombuffer(data, np.uint8)
    flags = cv2.IMREAD_UNCHANGED if keep_alpha else cv2.IMREAD_COLOR
    image = cv2.imdecode(nparr, flags)

    if image is None:
        raise ImageDecodeError("cv2.imdecode returned None")

    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)
    if image.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid dtype: {image.dtype}")

    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ImageDecodeError(f"Invalid image shape: {image.shape}")

    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ImageDecodeError(f"Empty image: {image.shape}")

    return image


def encode_image(image: np.ndarray, ext: str, quality: int = 100) -> bytes:
    """
    Encode a numpy image.

    Args:
        image: BGR or BGRA image, dtype=uint8
        ext: One of ".jpg", ".png", ".webp"
        quality: Quality 1-100 for lossy formats (ignored for PNG)

    Returns:
        Encoded bytes

    Raises:
        ValueError: If the format is unsupported or encoding fails
    """
    if ext == ".jpg":
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    elif ext == ".webp":
        params = [cv2.IMWRITE_WEBP_QUALITY, quality]
    elif ext == ".png":
        params = [cv2.IMWRITE_PNG_COMPRESSION, 3]
    else:
        raise ValueError(f"Unsupported image format: {ext}")

    ok, buf = cv2.imencode(ext, image, params)
    if not ok:
        raise ValueError(f"cv2.imencode failed for {ext}")
    return buf.tobytes()


def to_data_uri(data: bytes, ext: str) -> str:
    """Wrap encoded bytes into a base64 data URI."""
    mime = _MIME_TYPES[ext]
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Split a base64 data URI into (mime type, payload bytes).

    Raises:
        ImageDecodeError: If the URI is malformed
    """
    if not uri.startswith("data:"):
        raise ImageDecodeError("Not a data URI")

    header, sep, payload = uri.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ImageDecodeError("Data URI is not base64-encoded")

    mime = header[len("data:"):-len(";base64")]
    try:
        return mime, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ImageDecodeError(f"Base64 decode failed: {e}")


def decode_data_uri(uri: str, keep_alpha: bool = False) -> np.ndarray:
    """Decode a base64 data URI straight to an image array."""
    _, data = parse_data_uri(uri)
    return decode_image(data, keep_alpha=keep_alpha)


def ensure_bgra(image: np.ndarray) -> np.ndarray:
    """Return a BGRA copy, adding an opaque alpha channel if needed."""
    if image.shape[2] == 4:
        return image.copy()
    return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
