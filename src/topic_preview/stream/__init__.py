"""
Stream Module
=============

Subscription side of the image bus and frame decoding.

This module provides the ingestion layer for topic-preview:
    - TransportContext / Node / Topic: bus setup (ZeroMQ)
    - QosProfile / PREVIEW_QOS: subscription quality of service
    - HistoryBuffer: bounded drop-oldest queue (KEEP_LAST history)
    - TopicSubscription / Received: live async sequence of messages
    - decode: message -> NormalizedBitmap

Example:
    from topic_preview.stream import decode

    async with subscription:
        async for item in subscription:
            if item.ok:
                bitmap = decode(item.message)
"""

from topic_preview.stream.qos import (
    PREVIEW_QOS,
    Durability,
    History,
    QosProfile,
    Reliability,
)
from topic_preview.stream.buffer import HistoryBuffer
from topic_preview.stream.subscription import (
    Received,
    SubscriptionMetrics,
    TopicSubscription,
)
from topic_preview.stream.transport import (
    MessageTypeName,
    Name,
    Node,
    NodeName,
    Topic,
    TransportContext,
)
from topic_preview.stream.image_decoder import (
    ImageDecodeError,
    UnsupportedEncodingError,
    decode,
    swap_red_blue,
)


__all__ = [
    "PREVIEW_QOS",
    "QosProfile",
    "History",
    "Reliability",
    "Durability",
    "HistoryBuffer",
    "Received",
    "SubscriptionMetrics",
    "TopicSubscription",
    "MessageTypeName",
    "Name",
    "Node",
    "NodeName",
    "Topic",
    "TransportContext",
    "ImageDecodeError",
    "UnsupportedEncodingError",
    "decode",
    "swap_red_blue",
]
