#!/usr/bin/env python3
"""
Test Pattern Publisher
======================

Publishes a moving synthetic pattern on an image topic so the preview
client can be checked end to end without a camera.

Usage:
    python scripts/publish_test_pattern.py
    python scripts/publish_test_pattern.py --topic ssbu_c --format png --fps 15
    python scripts/publish_test_pattern.py --message-type Image --width 640 --height 480
"""

import argparse
import logging
import os
import signal
import sys
import time

import cv2
import numpy as np
import zmq

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from topic_preview.models import (
    MESSAGE_PACKAGE,
    CompressedImageMessage,
    Header,
    RawImageMessage,
)
from topic_preview.stream.wire import encode_message


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def make_pattern(width: int, height: int, frame_count: int) -> np.ndarray:
    """Moving gradient, BGR uint8."""
    x = np.linspace(0, 1, width, dtype=np.float32)
    y = np.linspace(0, 1, height, dtype=np.float32)
    phase = (frame_count % 60) / 60.0
    r = np.outer(y, np.roll(x, int(phase * width)))
    g = np.outer(np.roll(y, int(phase * height)), x)
    b = np.full((height, width), phase, dtype=np.float32)
    return (np.stack([b, g, r], axis=2) * 255).astype(np.uint8)


def make_header(frame_id: str) -> Header:
    now_ns = time.time_ns()
    return Header(
        sec=now_ns // 1_000_000_000,
        nanosec=now_ns % 1_000_000_000,
        frame_id=frame_id,
    )


def build_message(args, bgr: np.ndarray):
    header = make_header(args.frame_id)
    if args.message_type == "Image":
        height, width = bgr.shape[:2]
        return RawImageMessage(
            header=header,
            height=height,
            width=width,
            encoding="bgr8",
            is_bigendian=0,
            step=width * 3,
            data=bgr.tobytes(),
        )

    ok, encoded = cv2.imencode(f".{args.format}", bgr)
    if not ok:
        raise RuntimeError(f"cv2.imencode failed for format {args.format}")
    return CompressedImageMessage(header=header, format=args.format, data=encoded.tobytes())


def run(args) -> int:
    ctx = zmq.Context()
    socket = ctx.socket(zmq.PUB)
    socket.setsockopt(zmq.SNDHWM, 2)  # drop old frames if subscribers are slow
    socket.bind(args.endpoint)

    topic = f"/{args.topic}"
    type_name = f"{MESSAGE_PACKAGE}/{args.message_type}"
    logger.info(f"Publishing {type_name} on {topic} at {args.endpoint}")
    logger.info(f"{args.width}x{args.height} @ {args.fps} FPS")

    shutdown = False

    def handle_signal(sig, frame):
        nonlocal shutdown
        shutdown = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    frame_interval = 1.0 / args.fps
    frame_count = 0
    start_time = time.monotonic()

    while not shutdown:
        t0 = time.monotonic()

        bgr = make_pattern(args.width, args.height, frame_count)
        message = build_message(args, bgr)
        frames = encode_message(topic, type_name, message, seq=frame_count)

        try:
            socket.send_multipart(frames, zmq.NOBLOCK)
        except zmq.Again:
            pass  # subscribers too slow, drop frame

        frame_count += 1
        if frame_count % args.fps == 0:
            elapsed = time.monotonic() - start_time
            logger.info(f"frames={frame_count} fps={frame_count / elapsed:.1f}")

        sleep_time = frame_interval - (time.monotonic() - t0)
        if sleep_time > 0:
            time.sleep(sleep_time)

    logger.info(f"Done. Sent {frame_count} frames.")
    socket.close()
    ctx.term()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Publish a synthetic image stream")
    parser.add_argument("--endpoint", default="tcp://127.0.0.1:7447")
    parser.add_argument("--topic", default="ssbu_c")
    parser.add_argument("--message-type", choices=["Image", "CompressedImage"],
                        default="CompressedImage")
    parser.add_argument("--format", choices=["jpeg", "png"], default="jpeg",
                        help="Container for CompressedImage messages")
    parser.add_argument("--frame-id", default="test_pattern")
    parser.add_argument("--fps", type=int, default=30)
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    args = parser.parse_args()

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
