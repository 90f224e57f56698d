"""
Preview Loop
============

Drives a subscription through the frame decoder into a renderer.

State machine:
    UNINITIALIZED --first decoded frame--> ACTIVE

On the first decoded frame the surface is resized to ``target_width`` by a
height that keeps the frame's aspect ratio, then shown. The surface is not
resized again, even if later frames have other dimensions.

Per item:
    1. Transport error   -> log, skip
    2. Decode error      -> log, skip (includes unsupported encodings)
    3. Decode timeout    -> log, skip
    4. Success           -> first-frame transition, then set_image(topic)

Design Rules:
    - No per-item failure ends the loop
    - Items are handled strictly in arrival order
    - Renderer failures are NOT caught (the surface is gone)
    - The stop event ends the loop even while waiting for the next item
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import AsyncIterable, Callable, Optional, Tuple

from topic_preview.models.bitmap import NormalizedBitmap
from topic_preview.models.messages import ImageMessage
from topic_preview.render.renderer import Renderer
from topic_preview.stream.image_decoder import ImageDecodeError, decode
from topic_preview.stream.subscription import Received


logger = logging.getLogger(__name__)


DEFAULT_TARGET_WIDTH = 1280
DEFAULT_DECODE_TIMEOUT = 1.0
DEFAULT_DECODE_WORKERS = 2


class PreviewState(str, Enum):
    """
    Display state of the preview loop.

    Attributes:
        UNINITIALIZED: No frame rendered yet; surface hidden and unsized
        ACTIVE: Surface visible and sized from the first frame
    """

    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"


def display_geometry(frame_width: int, frame_height: int, target_width: int) -> Tuple[int, int]:
    """
    Surface size for a frame, preserving its aspect ratio.

    Args:
        frame_width: Source width in pixels (> 0)
        frame_height: Source height in pixels
        target_width: Desired surface width

    Returns:
        (target_width, frame_height * target_width // frame_width), with the
        height clamped to at least 1 for very wide frames
    """
    if frame_width <= 0:
        raise ValueError(f"frame_width must be positive, got {frame_width}")
    return target_width, max(1, frame_height * target_width // frame_width)


class PreviewLoopMetrics:
    """Metrics for PreviewLoop observability."""

    __slots__ = (
        "items_received",
        "frames_rendered",
        "transport_errors",
        "decode_errors",
        "decode_timeouts",
    )

    def __init__(self) -> None:
        self.items_received: int = 0
        self.frames_rendered: int = 0
        self.transport_errors: int = 0
        self.decode_errors: int = 0
        self.decode_timeouts: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "items_received": self.items_received,
            "frames_rendered": self.frames_rendered,
            "transport_errors": self.transport_errors,
            "decode_errors": self.decode_errors,
            "decode_timeouts": self.decode_timeouts,
        }


class PreviewLoop:
    """
    Subscription-to-render pipeline for a single topic.

    Attributes:
        topic_name: Key images are rendered under
        renderer: Display surface (owned by the caller)
        target_width: Surface width chosen on the first frame
        decode_timeout: Seconds a single decode may take before it is skipped
        metrics: Operational metrics

    Example:
        loop = PreviewLoop("ssbu_c", window)
        stop = asyncio.Event()

        async with subscription:
            await loop.run(subscription, stop)
    """

    def __init__(
        self,
        topic_name: str,
        renderer: Renderer,
        target_width: int = DEFAULT_TARGET_WIDTH,
        decode_timeout: Optional[float] = DEFAULT_DECODE_TIMEOUT,
        decoder: Callable[[ImageMessage], NormalizedBitmap] = decode,
        decode_workers: int = DEFAULT_DECODE_WORKERS,
    ) -> None:
        if target_width < 1:
            raise ValueError("target_width must be >= 1")
        if decode_workers < 1:
            raise ValueError("decode_workers must be >= 1")

        self.topic_name = topic_name
        self.renderer = renderer
        self.target_width = target_width
        self.decode_timeout = decode_timeout
        self.metrics = PreviewLoopMetrics()

        self._decoder = decoder
        self._decode_workers = decode_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._state = PreviewState.UNINITIALIZED
        self._first_geometry: Optional[Tuple[int, int]] = None

    @property
    def state(self) -> PreviewState:
        return self._state

    async def run(
        self,
        items: AsyncIterable[Received],
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Consume items until the sequence ends or ``stop_event`` is set.

        Args:
            items: Received items, e.g. a TopicSubscription
            stop_event: Optional external stop signal
        """
        iterator = items.__aiter__()
        stop_task: Optional[asyncio.Task] = None
        if stop_event is not None:
            stop_task = asyncio.ensure_future(stop_event.wait())

        logger.info(f"Preview loop started on {self.topic_name}")

        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    break

                next_task = asyncio.ensure_future(iterator.__anext__())
                if stop_task is not None:
                    await asyncio.wait(
                        {next_task, stop_task},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    if not next_task.done():
                        next_task.cancel()
                        try:
                            await next_task
                        except (asyncio.CancelledError, StopAsyncIteration):
                            pass
                        break

                try:
                    item = await next_task
                except StopAsyncIteration:
                    logger.info("Subscription ended")
                    break

                await self.handle(item)
        finally:
            if stop_task is not None:
                stop_task.cancel()
            self._shutdown_executor()

        logger.info(f"Preview loop stopped: {self.metrics.to_dict()}")

    async def handle(self, item: Received) -> Optional[NormalizedBitmap]:
        """
        Process one received item.

        Returns:
            The rendered bitmap, or None if the item was skipped.
        """
        self.metrics.items_received += 1

        if item.error is not None:
            self.metrics.transport_errors += 1
            logger.warning(f"Receive error on {self.topic_name}: {item.error}")
            return None

        bitmap = await self._decode(item.message)
        if bitmap is None:
            return None

        if self._state is PreviewState.UNINITIALIZED:
            self._activate(bitmap)
        elif (bitmap.width, bitmap.height) != self._first_geometry:
            logger.debug(
                f"Frame is {bitmap.width}x{bitmap.height}, surface was sized "
                f"for {self._first_geometry[0]}x{self._first_geometry[1]}"
            )

        self.renderer.set_image(self.topic_name, bitmap)
        self.metrics.frames_rendered += 1
        return bitmap

    async def _decode(self, message: ImageMessage) -> Optional[NormalizedBitmap]:
        """
        Decode off the event loop, bounded by decode_timeout.

        Decodes run on a small pool owned by this loop. A decode that times
        out keeps its worker until it returns; queued decodes that time out
        never start.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._decode_workers,
                thread_name_prefix="preview-decode",
            )
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._decoder, message),
                timeout=self.decode_timeout,
            )
        except asyncio.TimeoutError:
            self.metrics.decode_timeouts += 1
            logger.warning(
                f"Decode of {type(message).__name__} exceeded "
                f"{self.decode_timeout:.2f}s, frame skipped"
            )
        except ImageDecodeError as e:
            self.metrics.decode_errors += 1
            logger.warning(f"Frame skipped: {e}")
        return None

    def _shutdown_executor(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _activate(self, bitmap: NormalizedBitmap) -> None:
        """First-frame transition: size the surface and show it."""
        width, height = display_geometry(bitmap.width, bitmap.height, self.target_width)
        self.renderer.set_inner_size(width, height)
        self.renderer.set_visible(True)

        self._first_geometry = (bitmap.width, bitmap.height)
        self._state = PreviewState.ACTIVE
        logger.info(
            f"First frame {bitmap.width}x{bitmap.height}, "
            f"surface sized to {width}x{height}"
        )
