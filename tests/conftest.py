"""
Test Configuration
==================

Pytest fixtures and test doubles for topic-preview.
"""

import asyncio
from typing import List, Optional, Tuple

import cv2
import numpy as np
import pytest

from topic_preview.errors import TransportError
from topic_preview.models import (
    CompressedImageMessage,
    Header,
    MessageInfo,
    RawImageMessage,
)
from topic_preview.stream.subscription import Received


class RecordingRenderer:
    """Renderer double that records every call in order."""

    def __init__(self) -> None:
        self.calls: List[Tuple] = []
        self.images = {}
        self.size: Optional[Tuple[int, int]] = None
        self.visible = False
        self.closed = False
        self.keep_open = True

    def set_image(self, key, bitmap) -> None:
        self.calls.append(("set_image", key, bitmap.width, bitmap.height))
        self.images[key] = bitmap

    def surface_size(self):
        return self.size

    def is_visible(self) -> bool:
        return self.visible

    def set_inner_size(self, width, height) -> None:
        self.calls.append(("set_inner_size", width, height))
        self.size = (width, height)

    def set_visible(self, visible) -> None:
        self.calls.append(("set_visible", visible))
        self.visible = visible

    def poll_events(self) -> bool:
        return self.keep_open

    def close(self) -> None:
        self.closed = True

    def calls_named(self, name: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == name]


def make_header() -> Header:
    return Header(sec=1707321234, nanosec=567000000, frame_id="camera")


def make_bgr_pattern(width: int, height: int) -> np.ndarray:
    """Distinct value per pixel and channel, BGR uint8 (H, W, 3)."""
    values = np.arange(width * height * 3, dtype=np.uint32) % 251
    return values.astype(np.uint8).reshape((height, width, 3))


def make_raw(
    width: int,
    height: int,
    encoding: str = "bgr8",
    step: Optional[int] = None,
    data: Optional[bytes] = None,
) -> RawImageMessage:
    if step is None:
        step = width * 3
    if data is None:
        data = make_bgr_pattern(width, height).tobytes()
    return RawImageMessage(
        header=make_header(),
        height=height,
        width=width,
        encoding=encoding,
        is_bigendian=0,
        step=step,
        data=data,
    )


def make_compressed(width: int, height: int, ext: str = ".png") -> CompressedImageMessage:
    ok, encoded = cv2.imencode(ext, make_bgr_pattern(width, height))
    assert ok
    return CompressedImageMessage(
        header=make_header(),
        format=ext.lstrip("."),
        data=encoded.tobytes(),
    )


def ok_item(message, seq: int = 1) -> Received:
    info = MessageInfo(topic="/t", sequence_number=seq, received_at=0.0)
    return Received.success(message, info)


def error_item(text: str = "receive failed") -> Received:
    return Received.failure(TransportError(text))


async def items_from(items):
    """Async iterable over a fixed list of received items."""
    for item in items:
        await asyncio.sleep(0)
        yield item


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def header() -> Header:
    return make_header()


@pytest.fixture
def sample_raw_metadata():
    """Metadata JSON body of a raw message, as published on the wire."""
    return {
        "header": {"sec": 12, "nanosec": 500, "frame_id": "camera"},
        "height": 2,
        "width": 2,
        "encoding": "bgr8",
        "is_bigendian": 0,
        "step": 6,
    }


@pytest.fixture
def highgui(monkeypatch):
    """Record highgui calls instead of opening windows."""
    calls = []
    monkeypatch.setattr(cv2, "namedWindow", lambda name, flags: calls.append(("namedWindow", name)))
    monkeypatch.setattr(cv2, "resizeWindow", lambda name, w, h: calls.append(("resizeWindow", w, h)))
    monkeypatch.setattr(cv2, "imshow", lambda name, frame: calls.append(("imshow", frame.copy())))
    monkeypatch.setattr(cv2, "destroyWindow", lambda name: calls.append(("destroyWindow", name)))
    monkeypatch.setattr(cv2, "waitKey", lambda delay: -1)
    monkeypatch.setattr(cv2, "getWindowProperty", lambda name, prop: 1.0)
    return calls
