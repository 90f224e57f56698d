"""
Wire Codec
==========

Multipart framing of image messages on the ZeroMQ bus.

Frame layout (4 parts):
    [0] topic     UTF-8 fully qualified topic name, e.g. b"/ssbu_c"
    [1] type      UTF-8 type name, e.g. b"sensor_msgs/CompressedImage"
    [2] metadata  UTF-8 JSON object: every field except ``data``,
                  plus an optional publisher ``seq`` counter
    [3] payload   raw ``data`` bytes

The topic part doubles as the ZeroMQ subscription prefix.

Design Rules:
    - Schema validation happens here, via the pydantic message models
    - Every malformed message surfaces as TransportError
    - Image payloads are passed through untouched
"""

import json
import logging
from typing import List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from topic_preview.errors import TransportError
from topic_preview.models.messages import ImageMessage


logger = logging.getLogger(__name__)


FRAME_COUNT = 4
SEQUENCE_KEY = "seq"


def encode_message(
    topic: str,
    type_name: str,
    message: ImageMessage,
    seq: Optional[int] = None,
) -> List[bytes]:
    """
    Build the multipart frames for a message.

    Args:
        topic: Fully qualified topic name
        type_name: Fully qualified type name ("sensor_msgs/Image")
        message: Message to encode
        seq: Optional publisher sequence number

    Returns:
        List of 4 frames ready for ``send_multipart``
    """
    metadata = message.model_dump(exclude={"data"})
    if seq is not None:
        metadata[SEQUENCE_KEY] = seq

    return [
        topic.encode("utf-8"),
        type_name.encode("utf-8"),
        json.dumps(metadata, separators=(",", ":")).encode("utf-8"),
        bytes(message.data),
    ]


def read_topic(frames: List[bytes]) -> str:
    """
    Extract the topic name from a multipart message.

    Raises:
        TransportError: If the frames are malformed
    """
    if len(frames) != FRAME_COUNT:
        raise TransportError(
            f"Expected {FRAME_COUNT} frames, got {len(frames)}"
        )
    try:
        return frames[0].decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransportError(f"Topic frame is not UTF-8: {e}") from e


def decode_message(
    frames: List[bytes],
    expected_type: str,
    message_type: Type[BaseModel],
) -> Tuple[ImageMessage, Optional[int]]:
    """
    Parse and validate a multipart message.

    Args:
        frames: Frames as returned by ``recv_multipart``
        expected_type: Fully qualified type name the topic carries
        message_type: Model class to validate against

    Returns:
        Tuple of (message, publisher sequence number or None)

    Raises:
        TransportError: On framing, type, JSON or schema errors
    """
    read_topic(frames)
    _, type_frame, metadata_frame, payload = frames

    try:
        type_name = type_frame.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransportError(f"Type frame is not UTF-8: {e}") from e

    if type_name != expected_type:
        raise TransportError(
            f"Type mismatch: topic carries {expected_type}, got {type_name}"
        )

    try:
        metadata = json.loads(metadata_frame.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TransportError(f"Failed to parse message metadata: {e}") from e

    if not isinstance(metadata, dict):
        raise TransportError(
            f"Message metadata must be a JSON object, got {type(metadata).__name__}"
        )

    seq = metadata.pop(SEQUENCE_KEY, None)
    if seq is not None and (isinstance(seq, bool) or not isinstance(seq, int)):
        raise TransportError(f"Invalid publisher sequence number: {seq!r}")

    metadata["data"] = payload

    try:
        message = message_type.model_validate(metadata)
    except ValidationError as e:
        raise TransportError(
            f"Invalid {type_name} message: {e.error_count()} validation error(s): "
            f"{e.errors(include_url=False, include_input=False)}"
        ) from e

    return message, seq
