"""
Data Models
===========

Message schema and decoded bitmap types.

Models:
    Messages:
        - Header: Timestamp + frame of reference
        - RawImageMessage: Uncompressed pixel buffer ("Image")
        - CompressedImageMessage: Compressed container ("CompressedImage")
        - MessageInfo: Receive-side metadata

    Output:
        - NormalizedBitmap: RGB bitmap handed to the renderer
"""

from topic_preview.models.messages import (
    MESSAGE_PACKAGE,
    MESSAGE_TYPES,
    CompressedImageMessage,
    Header,
    ImageMessage,
    MessageInfo,
    RawImageMessage,
    message_type_for,
)
from topic_preview.models.bitmap import NormalizedBitmap

__all__ = [
    # Messages
    "MESSAGE_PACKAGE",
    "MESSAGE_TYPES",
    "Header",
    "RawImageMessage",
    "CompressedImageMessage",
    "ImageMessage",
    "MessageInfo",
    "message_type_for",
    # Output
    "NormalizedBitmap",
]
