"""
Image Decoder
=============

Converts received image messages into NormalizedBitmap instances.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Dispatch is over the closed message union (raw | compressed)
    - Raw messages: only "bgr8" is accepted; BGR is swapped to RGB
    - Compressed messages: container is sniffed from magic bytes,
      then decoded with OpenCV
    - No resizing, cropping or colour-space work beyond BGR -> RGB
    - Fails fast: every failure surfaces as ImageDecodeError
"""

import logging
from typing import Optional

import cv2
import numpy as np

from topic_preview.models.bitmap import NormalizedBitmap
from topic_preview.models.messages import (
    CompressedImageMessage,
    ImageMessage,
    RawImageMessage,
)


logger = logging.getLogger(__name__)


SUPPORTED_RAW_ENCODING = "bgr8"
BGR8_CHANNELS = 3

# Container signatures, checked in order.
_MAGIC_BYTES = (
    (b"\xff\xd8\xff", "jpeg"),
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"BM", "bmp"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
    (b"P1", "pnm"),
    (b"P2", "pnm"),
    (b"P3", "pnm"),
    (b"P4", "pnm"),
    (b"P5", "pnm"),
    (b"P6", "pnm"),
)


class ImageDecodeError(Exception):
    """Raised when a message cannot be turned into a bitmap."""
    pass


class UnsupportedEncodingError(ImageDecodeError):
    """Raised for raw messages with a pixel encoding other than bgr8."""

    def __init__(self, encoding: str) -> None:
        super().__init__(
            f"Unsupported raw encoding {encoding!r} "
            f"(only {SUPPORTED_RAW_ENCODING!r} is supported)"
        )
        self.encoding = encoding


def swap_red_blue(pixels: np.ndarray) -> np.ndarray:
    """
    Reverse the channel order of every pixel.

    Turns BGR into RGB and back; applying it twice is a no-op.

    Args:
        pixels: Array of shape (H, W, 3)

    Returns:
        New contiguous array with channels reversed
    """
    return np.ascontiguousarray(pixels[:, :, ::-1])


def sniff_format(data: bytes) -> Optional[str]:
    """
    Detect the container format from the leading bytes.

    Returns:
        Format name ("jpeg", "png", ...) or None if unrecognised
    """
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    for magic, name in _MAGIC_BYTES:
        if data.startswith(magic):
            return name
    return None


def decode_raw(message: RawImageMessage) -> NormalizedBitmap:
    """
    Decode an uncompressed bgr8 message.

    The buffer holds ``height`` rows of ``step`` bytes each. Only the first
    ``width * 3`` bytes of every row carry pixels; any remainder is padding.

    Args:
        message: Raw image message

    Returns:
        RGB bitmap of the same width and height

    Raises:
        UnsupportedEncodingError: If the encoding is not bgr8
        ImageDecodeError: If the geometry or buffer length is invalid
    """
    if message.encoding != SUPPORTED_RAW_ENCODING:
        raise UnsupportedEncodingError(message.encoding)

    width, height, step = message.width, message.height, message.step
    if width == 0 or height == 0:
        raise ImageDecodeError(f"Empty raw image: {width}x{height}")

    row_bytes = width * BGR8_CHANNELS
    if step < row_bytes:
        raise ImageDecodeError(
            f"Row stride {step} is shorter than {width} bgr8 pixels ({row_bytes} bytes)"
        )

    required = height * step
    if len(message.data) < required:
        raise ImageDecodeError(
            f"Raw buffer too short: got {len(message.data)} bytes, "
            f"need {required} for {height} rows of {step}"
        )

    rows = np.frombuffer(message.data, dtype=np.uint8, count=required)
    rows = rows.reshape((height, step))
    bgr = rows[:, :row_bytes].reshape((height, width, BGR8_CHANNELS))

    return NormalizedBitmap.from_array(swap_red_blue(bgr))


def decode_compressed(message: CompressedImageMessage) -> NormalizedBitmap:
    """
    Decode a compressed container into an RGB bitmap.

    Args:
        message: Compressed image message

    Returns:
        RGB bitmap at the container's native resolution

    Raises:
        ImageDecodeError: If the container is unrecognised or corrupt
    """
    data = message.data
    if not data:
        raise ImageDecodeError("Compressed payload is empty")

    detected = sniff_format(data)
    if detected is None:
        raise ImageDecodeError(
            f"Unrecognised container (declared {message.format!r}, "
            f"leading bytes {data[:8].hex()})"
        )
    if message.format and detected not in message.format.lower():
        logger.debug(
            f"Declared format {message.format!r} differs from detected {detected!r}"
        )

    try:
        nparr = np.frombuffer(data, np.uint8)
        bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise ImageDecodeError(f"OpenCV failed to decode {detected} payload: {e}") from e

    if bgr is None:
        raise ImageDecodeError(f"Failed to decode {detected} payload: cv2.imdecode returned None")

    if bgr.ndim != 3 or bgr.shape[2] != BGR8_CHANNELS:
        raise ImageDecodeError(f"Invalid decoded image shape: {bgr.shape}")

    if bgr.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid decoded dtype: {bgr.dtype}")

    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
    return NormalizedBitmap.from_array(rgb)


def decode(message: ImageMessage) -> NormalizedBitmap:
    """
    Decode any supported image message.

    Args:
        message: RawImageMessage or CompressedImageMessage

    Returns:
        NormalizedBitmap

    Raises:
        ImageDecodeError: On any decoding failure
    """
    try:
        if isinstance(message, RawImageMessage):
            return decode_raw(message)
        if isinstance(message, CompressedImageMessage):
            return decode_compressed(message)
    except ImageDecodeError:
        raise
    except Exception as e:
        raise ImageDecodeError(f"Unexpected error decoding {type(message).__name__}: {e}") from e

    raise ImageDecodeError(f"Not an image message: {type(message).__name__}")
