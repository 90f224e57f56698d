"""
Topic Subscription
==================

Live, non-restartable async sequence of messages received on one topic.

A background pump task moves multipart messages from the SUB socket into a
HistoryBuffer sized by the QoS history depth. Iterating the subscription
yields one Received item per message: either a validated (message, info)
pair or the TransportError that message produced.

Example:
    async with subscription:
        async for item in subscription:
            if item.error is not None:
                logger.warning(item.error)
                continue
            handle(item.message, item.info)

Design Rules:
    - A single malformed message never ends the sequence
    - A fatal socket error ends the sequence
    - Once closed, the subscription cannot be iterated again
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Type

import zmq
import zmq.asyncio
from pydantic import BaseModel

from topic_preview.errors import SubscriptionClosedError, TransportError
from topic_preview.models.messages import ImageMessage, MessageInfo
from topic_preview.stream import wire
from topic_preview.stream.buffer import HistoryBuffer
from topic_preview.stream.qos import QosProfile


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Received:
    """
    One item of a subscription: a message with its info, or an error.

    Attributes:
        message: Validated message (None on error)
        info: Receive metadata (None on error)
        error: Transport error for this item (None on success)
    """

    message: Optional[ImageMessage] = None
    info: Optional[MessageInfo] = None
    error: Optional[TransportError] = None

    @classmethod
    def success(cls, message: ImageMessage, info: MessageInfo) -> "Received":
        return cls(message=message, info=info)

    @classmethod
    def failure(cls, error: TransportError) -> "Received":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


class SubscriptionMetrics:
    """Metrics for TopicSubscription observability."""

    __slots__ = (
        "messages_received",
        "transport_errors",
        "foreign_topic_messages",
    )

    def __init__(self) -> None:
        self.messages_received: int = 0
        self.transport_errors: int = 0
        self.foreign_topic_messages: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "messages_received": self.messages_received,
            "transport_errors": self.transport_errors,
            "foreign_topic_messages": self.foreign_topic_messages,
        }


class TopicSubscription:
    """
    Async iterable of items received on a topic.

    Attributes:
        topic: Fully qualified topic name
        type_name: Fully qualified message type name
        qos: QoS profile in force
        metrics: Operational metrics
    """

    def __init__(
        self,
        topic: str,
        type_name: str,
        message_type: Type[BaseModel],
        socket: zmq.asyncio.Socket,
        qos: QosProfile,
    ) -> None:
        self.topic = topic
        self.type_name = type_name
        self.qos = qos
        self.metrics = SubscriptionMetrics()

        self._message_type = message_type
        self._socket = socket
        self._buffer = HistoryBuffer(maxsize=qos.buffer_size)
        self._poll_timeout_ms = max(1, int(qos.max_blocking_time * 1000))
        self._pump_task: Optional[asyncio.Task] = None
        self._sequence: int = 0
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "TopicSubscription":
        if self._closed:
            raise SubscriptionClosedError(
                f"Subscription to {self.topic} has ended; create a new one"
            )
        return self

    async def __anext__(self) -> Received:
        if self._pump_task is None and not self._closed:
            self._pump_task = asyncio.create_task(
                self._pump(), name=f"subscription_pump:{self.topic}"
            )

        item = await self._buffer.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        """Stop receiving and release the socket. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None

        self._socket.close(linger=0)
        self._buffer.close()
        logger.info(f"Subscription to {self.topic} closed")

    async def __aenter__(self) -> "TopicSubscription":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def metrics_dict(self) -> dict:
        """Subscription and history buffer metrics combined."""
        data = self.metrics.to_dict()
        data["history"] = self._buffer.metrics()
        return data

    async def _pump(self) -> None:
        """Move messages from the socket into the history buffer."""
        try:
            while not self._closed:
                events = await self._socket.poll(timeout=self._poll_timeout_ms)
                if not events & zmq.POLLIN:
                    continue
                frames = await self._socket.recv_multipart()
                self._accept(frames)
        except zmq.ZMQError as e:
            if not self._closed:
                logger.error(f"Subscription to {self.topic} failed: {e}")
        finally:
            # The sequence ends with the pump, whatever the reason.
            self._buffer.close()

    def _accept(self, frames) -> None:
        received_at = time.time()

        try:
            topic = wire.read_topic(frames)
        except TransportError as e:
            self._push_error(e)
            return

        if topic != self.topic:
            # Prefix match on a longer topic name; not ours.
            self.metrics.foreign_topic_messages += 1
            return

        try:
            message, publisher_seq = wire.decode_message(
                frames, self.type_name, self._message_type
            )
        except TransportError as e:
            self._push_error(e)
            return

        self._sequence += 1
        self.metrics.messages_received += 1
        info = MessageInfo(
            topic=self.topic,
            sequence_number=self._sequence,
            received_at=received_at,
            publisher_sequence=publisher_seq,
        )
        self._buffer.put(Received.success(message, info))

    def _push_error(self, error: TransportError) -> None:
        self.metrics.transport_errors += 1
        self._buffer.put(Received.failure(error))
