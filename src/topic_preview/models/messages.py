"""
Image Message Schema
====================

Pydantic models for the two image message shapes carried on the bus.

Both variants mirror the ``sensor_msgs`` definitions used by the publishers:

    Image (raw):
        {
            "header": {"sec": 12, "nanosec": 500, "frame_id": "camera"},
            "height": 480,
            "width": 640,
            "encoding": "bgr8",
            "is_bigendian": 0,
            "step": 1920,
            "data": <bytes>
        }

    CompressedImage:
        {
            "header": {"sec": 12, "nanosec": 500, "frame_id": "camera"},
            "format": "jpeg",
            "data": <bytes>
        }

The variants share no discriminant field. Each declares its own
``TYPE_NAME`` which is used to bind a subscription to a topic type.

Design Rules:
    - Models are immutable once validated
    - Field presence and ranges are checked here, at the transport edge
    - No image data is interpreted here (see stream.image_decoder)
"""

from dataclasses import dataclass
from typing import ClassVar, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field


MESSAGE_PACKAGE = "sensor_msgs"

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
UINT32_MAX = 2 ** 32 - 1
NANOSEC_MAX = 999_999_999


class Header(BaseModel):
    """
    Timestamp and frame of reference embedded in every message.

    Attributes:
        sec: Seconds component (signed 32-bit)
        nanosec: Nanoseconds component (0 - 999,999,999)
        frame_id: Frame of reference identifier
    """

    model_config = ConfigDict(frozen=True)

    sec: int = Field(..., ge=INT32_MIN, le=INT32_MAX, description="Seconds")
    nanosec: int = Field(..., ge=0, le=NANOSEC_MAX, description="Nanoseconds")
    frame_id: str = Field(default="", description="Frame of reference id")


class RawImageMessage(BaseModel):
    """
    Uncompressed pixel buffer.

    ``data`` must hold at least ``height * step`` bytes; the decoder
    rejects anything shorter.
    """

    model_config = ConfigDict(frozen=True)

    TYPE_NAME: ClassVar[str] = "Image"

    header: Header
    height: int = Field(..., ge=0, le=UINT32_MAX, description="Rows in pixels")
    width: int = Field(..., ge=0, le=UINT32_MAX, description="Columns in pixels")
    encoding: str = Field(..., description="Pixel encoding tag, e.g. 'bgr8'")
    is_bigendian: int = Field(default=0, ge=0, le=1, description="Endianness flag")
    step: int = Field(..., ge=0, le=UINT32_MAX, description="Row stride in bytes")
    data: bytes = Field(..., repr=False, description="Pixel buffer")


class CompressedImageMessage(BaseModel):
    """
    Compressed image container.

    ``format`` is informational only. The container is sniffed from
    the payload when decoding.
    """

    model_config = ConfigDict(frozen=True)

    TYPE_NAME: ClassVar[str] = "CompressedImage"

    header: Header
    format: str = Field(default="", description="Declared container, e.g. 'jpeg'")
    data: bytes = Field(..., repr=False, description="Compressed payload")


ImageMessage = Union[RawImageMessage, CompressedImageMessage]

MESSAGE_TYPES: Dict[str, Type[BaseModel]] = {
    RawImageMessage.TYPE_NAME: RawImageMessage,
    CompressedImageMessage.TYPE_NAME: CompressedImageMessage,
}


def message_type_for(type_name: str) -> Type[BaseModel]:
    """
    Look up a message class by its topic type name.

    Args:
        type_name: "Image" or "CompressedImage"

    Returns:
        The matching message model class

    Raises:
        ValueError: If the type name is unknown
    """
    try:
        return MESSAGE_TYPES[type_name]
    except KeyError:
        known = ", ".join(sorted(MESSAGE_TYPES))
        raise ValueError(
            f"Unknown message type {type_name!r} (expected one of: {known})"
        ) from None


@dataclass(frozen=True, slots=True)
class MessageInfo:
    """
    Receive-side metadata delivered alongside every message.

    Attributes:
        topic: Fully qualified topic name the message arrived on
        sequence_number: Per-subscription counter, starting at 1
        received_at: UNIX time the message was taken off the socket
        publisher_sequence: Sequence number stamped by the publisher, if any
    """

    topic: str
    sequence_number: int
    received_at: float
    publisher_sequence: Optional[int] = None
