"""
Transport and Subscription Tests
================================

Name rules, setup errors, QoS and live delivery over an inproc socket.
"""

import asyncio
import json
import uuid

import pytest
import zmq
import zmq.asyncio

from topic_preview.errors import SetupError, SubscriptionClosedError, TransportError
from topic_preview.models import CompressedImageMessage, RawImageMessage
from topic_preview.stream import (
    PREVIEW_QOS,
    Durability,
    History,
    MessageTypeName,
    Name,
    NodeName,
    QosProfile,
    Reliability,
    TransportContext,
    decode,
)
from topic_preview.stream.wire import encode_message

from conftest import make_compressed


COMPRESSED_TYPE = MessageTypeName("sensor_msgs", "CompressedImage")


class TestNames:

    def test_root_namespace(self):
        assert Name("/", "ssbu_c").fully_qualified == "/ssbu_c"

    def test_nested_namespace(self):
        assert NodeName("/rustdds", "rustdds_listener").fully_qualified == "/rustdds/rustdds_listener"
        assert str(Name("/a/b", "c")) == "/a/b/c"

    @pytest.mark.parametrize("namespace, base", [
        ("rustdds", "listener"),
        ("/", "1camera"),
        ("/", "has space"),
        ("/", ""),
        ("/a//b", "c"),
    ])
    def test_invalid_names(self, namespace, base):
        with pytest.raises(SetupError):
            Name(namespace, base)

    def test_message_type_name(self):
        assert str(COMPRESSED_TYPE) == "sensor_msgs/CompressedImage"
        with pytest.raises(SetupError):
            MessageTypeName("sensor_msgs", "Compressed/Image")


class TestQos:

    def test_preview_profile(self):
        assert PREVIEW_QOS.history is History.KEEP_LAST
        assert PREVIEW_QOS.depth == 2
        assert PREVIEW_QOS.reliability is Reliability.RELIABLE
        assert PREVIEW_QOS.max_blocking_time == pytest.approx(0.1)
        assert PREVIEW_QOS.durability is Durability.VOLATILE
        assert PREVIEW_QOS.buffer_size == 2

    def test_keep_all_is_unbounded(self):
        assert QosProfile(history=History.KEEP_ALL).buffer_size is None

    def test_transient_local_rejected(self):
        with pytest.raises(SetupError, match="TRANSIENT_LOCAL"):
            QosProfile(durability=Durability.TRANSIENT_LOCAL).validate()

    def test_zero_depth_rejected(self):
        with pytest.raises(SetupError):
            QosProfile(depth=0).validate()


class TestSetup:

    def test_invalid_endpoint(self):
        with pytest.raises(SetupError):
            TransportContext("localhost:7447")

    def test_type_mismatch_is_setup_error(self):
        with TransportContext("inproc://unused") as context:
            node = context.new_node(NodeName("/rustdds", "rustdds_listener"))
            topic = node.create_topic(Name("/", "t"), COMPRESSED_TYPE)
            with pytest.raises(SetupError, match="does not match"):
                node.create_subscription(topic, RawImageMessage, PREVIEW_QOS)

    def test_unsupported_qos_is_setup_error(self):
        with TransportContext("inproc://unused") as context:
            node = context.new_node(NodeName("/rustdds", "rustdds_listener"))
            topic = node.create_topic(Name("/", "t"), COMPRESSED_TYPE)
            qos = QosProfile(durability=Durability.TRANSIENT_LOCAL)
            with pytest.raises(SetupError):
                node.create_subscription(topic, CompressedImageMessage, qos)

    def test_closed_context(self):
        context = TransportContext("inproc://unused")
        context.close()
        with pytest.raises(SetupError):
            context.new_node(NodeName("/", "n"))


async def _next_with_retry(publisher, frames, iterator, attempts=50):
    """Publish until the subscription has joined and delivers an item."""
    for _ in range(attempts):
        await publisher.send_multipart(frames)
        try:
            return await asyncio.wait_for(iterator.__anext__(), timeout=0.1)
        except asyncio.TimeoutError:
            continue
    raise AssertionError("no item delivered")


class TestLiveSubscription:
    """End-to-end delivery over a real ZeroMQ inproc socket."""

    def _run(self, scenario):
        endpoint = f"inproc://preview-{uuid.uuid4().hex}"
        zmq_context = zmq.asyncio.Context()
        try:
            return asyncio.run(scenario(endpoint, zmq_context))
        finally:
            zmq_context.destroy(linger=0)

    def _subscribe(self, endpoint, zmq_context, topic_name="t"):
        context = TransportContext(endpoint, zmq_context=zmq_context)
        node = context.new_node(NodeName("/rustdds", "rustdds_listener"))
        topic = node.create_topic(Name("/", topic_name), COMPRESSED_TYPE)
        return node.create_subscription(topic, CompressedImageMessage, PREVIEW_QOS)

    def test_delivers_message_and_info(self):
        async def scenario(endpoint, zmq_context):
            publisher = zmq_context.socket(zmq.PUB)
            publisher.bind(endpoint)
            subscription = self._subscribe(endpoint, zmq_context)
            frames = encode_message("/t", str(COMPRESSED_TYPE), make_compressed(32, 24), seq=3)

            async with subscription:
                item = await _next_with_retry(publisher, frames, subscription.__aiter__())

            publisher.close(linger=0)
            return item, subscription

        item, subscription = self._run(scenario)

        assert item.ok
        assert item.info.topic == "/t"
        assert item.info.sequence_number >= 1
        assert item.info.publisher_sequence == 3
        bitmap = decode(item.message)
        assert (bitmap.width, bitmap.height) == (32, 24)
        assert subscription.closed

    def test_malformed_message_is_an_item_error(self):
        async def scenario(endpoint, zmq_context):
            publisher = zmq_context.socket(zmq.PUB)
            publisher.bind(endpoint)
            subscription = self._subscribe(endpoint, zmq_context)
            frames = [b"/t", str(COMPRESSED_TYPE).encode(), json.dumps({"format": 1}).encode(), b""]

            async with subscription:
                item = await _next_with_retry(publisher, frames, subscription.__aiter__())
                metrics = subscription.metrics_dict()

            publisher.close(linger=0)
            return item, metrics

        item, metrics = self._run(scenario)

        assert not item.ok
        assert isinstance(item.error, TransportError)
        assert metrics["transport_errors"] >= 1
        assert metrics["history"]["maxsize"] == 2

    def test_not_restartable(self):
        async def scenario(endpoint, zmq_context):
            subscription = self._subscribe(endpoint, zmq_context)
            await subscription.close()
            with pytest.raises(SubscriptionClosedError):
                subscription.__aiter__()

        self._run(scenario)

    def test_close_ends_pending_iteration(self):
        async def scenario(endpoint, zmq_context):
            subscription = self._subscribe(endpoint, zmq_context)
            iterator = subscription.__aiter__()
            pending = asyncio.ensure_future(iterator.__anext__())
            await asyncio.sleep(0.05)
            await subscription.close()
            with pytest.raises(StopAsyncIteration):
                await asyncio.wait_for(pending, timeout=1.0)

        self._run(scenario)
