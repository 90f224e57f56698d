"""
Transport
=========

Node, topic and subscription creation on the ZeroMQ publish/subscribe bus.

Publishers bind PUB sockets and send 4-part messages (see stream.wire);
this side connects SUB sockets filtered on the fully qualified topic name.

Example:
    from topic_preview.models import CompressedImageMessage
    from topic_preview.stream import (
        MessageTypeName, Name, NodeName, TransportContext, PREVIEW_QOS,
    )

    with TransportContext("tcp://127.0.0.1:7447") as context:
        node = context.new_node(NodeName("/rustdds", "rustdds_listener"))
        topic = node.create_topic(
            Name("/", "ssbu_c"),
            MessageTypeName("sensor_msgs", "CompressedImage"),
        )
        subscription = node.create_subscription(
            topic, CompressedImageMessage, PREVIEW_QOS,
        )

        async with subscription:
            async for item in subscription:
                ...

Design Rules:
    - Every failure while building these objects is a SetupError
    - Names follow the bus rules: namespaces start with "/", base names
      are identifiers
    - The transport owns its sockets; closing the context closes them all
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Type

import zmq
import zmq.asyncio
from pydantic import BaseModel

from topic_preview.errors import SetupError
from topic_preview.stream.qos import QosProfile
from topic_preview.stream.subscription import TopicSubscription


logger = logging.getLogger(__name__)


_BASE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_base_name(kind: str, value: str) -> None:
    if not _BASE_NAME_RE.match(value):
        raise SetupError(f"Invalid {kind} {value!r}: must match [A-Za-z_][A-Za-z0-9_]*")


def _check_namespace(value: str) -> None:
    if not value.startswith("/"):
        raise SetupError(f"Invalid namespace {value!r}: must start with '/'")
    if value == "/":
        return
    for segment in value[1:].split("/"):
        _check_base_name("namespace segment", segment)


@dataclass(frozen=True)
class Name:
    """Namespaced name of a topic."""

    namespace: str
    base_name: str

    def __post_init__(self) -> None:
        _check_namespace(self.namespace)
        _check_base_name("name", self.base_name)

    @property
    def fully_qualified(self) -> str:
        if self.namespace == "/":
            return f"/{self.base_name}"
        return f"{self.namespace}/{self.base_name}"

    def __str__(self) -> str:
        return self.fully_qualified


@dataclass(frozen=True)
class NodeName(Name):
    """Namespaced name of a node."""
    pass


@dataclass(frozen=True)
class MessageTypeName:
    """Type name in the form ``package/TypeName``."""

    package: str
    type_name: str

    def __post_init__(self) -> None:
        _check_base_name("message package", self.package)
        _check_base_name("message type", self.type_name)

    @property
    def fully_qualified(self) -> str:
        return f"{self.package}/{self.type_name}"

    def __str__(self) -> str:
        return self.fully_qualified


@dataclass(frozen=True)
class Topic:
    """A topic keyed by (name, type)."""

    name: Name
    type_name: MessageTypeName


class Node:
    """
    A named participant on the bus.

    Created through :meth:`TransportContext.new_node`.
    """

    def __init__(self, context: "TransportContext", name: NodeName) -> None:
        self.context = context
        self.name = name
        self._subscriptions: List[TopicSubscription] = []

    def create_topic(self, name: Name, type_name: MessageTypeName) -> Topic:
        """Declare a topic keyed by name and message type."""
        topic = Topic(name=name, type_name=type_name)
        logger.info(f"Node {self.name} declared topic {name} [{type_name}]")
        return topic

    def create_subscription(
        self,
        topic: Topic,
        message_type: Type[BaseModel],
        qos: QosProfile,
    ) -> TopicSubscription:
        """
        Subscribe to a topic.

        Args:
            topic: Topic from :meth:`create_topic`
            message_type: Message model the topic carries
            qos: QoS policy for the subscription

        Returns:
            TopicSubscription (an async iterable of received items)

        Raises:
            SetupError: On QoS, type or socket errors
        """
        qos.validate()

        declared = getattr(message_type, "TYPE_NAME", None)
        if declared != topic.type_name.type_name:
            raise SetupError(
                f"Message class {message_type.__name__} ({declared}) does not "
                f"match topic type {topic.type_name}"
            )

        socket = self.context.open_sub_socket(topic.name.fully_qualified, qos)
        subscription = TopicSubscription(
            topic=topic.name.fully_qualified,
            type_name=topic.type_name.fully_qualified,
            message_type=message_type,
            socket=socket,
            qos=qos,
        )
        self._subscriptions.append(subscription)
        logger.info(
            f"Node {self.name} subscribed to {topic.name} "
            f"(history={qos.history.value}, depth={qos.depth}, "
            f"reliability={qos.reliability.value}, "
            f"durability={qos.durability.value})"
        )
        return subscription


class TransportContext:
    """
    Owns the ZeroMQ context and the endpoint publishers are reached on.

    Attributes:
        endpoint: ZeroMQ endpoint to connect to (tcp://, ipc://, inproc://)
    """

    def __init__(
        self,
        endpoint: str,
        zmq_context: Optional[zmq.asyncio.Context] = None,
    ) -> None:
        if "://" not in endpoint:
            raise SetupError(f"Invalid endpoint {endpoint!r}: expected transport://address")

        self.endpoint = endpoint
        self._owns_context = zmq_context is None
        self._zmq_context = zmq_context or zmq.asyncio.Context()
        self._closed = False

    @property
    def zmq_context(self) -> zmq.asyncio.Context:
        return self._zmq_context

    def new_node(self, name: NodeName) -> Node:
        """Register a node on this context."""
        if self._closed:
            raise SetupError("Transport context is closed")
        logger.info(f"Created node {name} on {self.endpoint}")
        return Node(self, name)

    def open_sub_socket(self, topic: str, qos: QosProfile) -> zmq.asyncio.Socket:
        """Open a SUB socket filtered on ``topic``."""
        if self._closed:
            raise SetupError("Transport context is closed")

        socket = None
        try:
            socket = self._zmq_context.socket(zmq.SUB)
            socket.setsockopt(zmq.LINGER, 0)
            if qos.buffer_size is not None:
                socket.setsockopt(zmq.RCVHWM, qos.buffer_size)
            socket.connect(self.endpoint)
            socket.setsockopt(zmq.SUBSCRIBE, topic.encode("utf-8"))
        except zmq.ZMQError as e:
            if socket is not None:
                socket.close(linger=0)
            raise SetupError(f"Failed to subscribe to {topic} at {self.endpoint}: {e}") from e

        return socket

    def close(self) -> None:
        """Close all sockets and terminate the context."""
        if self._closed:
            return
        self._closed = True
        if self._owns_context:
            self._zmq_context.destroy(linger=0)
        logger.info("Transport context closed")

    def __enter__(self) -> "TransportContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
