"""
topic-preview Entry Point
=========================

Builds the pipeline from configuration and runs it until the subscription
ends, the window is closed, or SIGINT/SIGTERM arrives.

Exit status:
    0 - clean shutdown
    1 - setup failure (config, node, topic, subscription or window)

Usage:
    topic-preview
    python -m topic_preview
    PREVIEW_TOPIC=camera PREVIEW_MESSAGE_TYPE=Image topic-preview
"""

import asyncio
import logging
import signal
from typing import List, Optional

import yaml
from pydantic import ValidationError

from topic_preview.config import Settings, load_config, setup_logging
from topic_preview.errors import RenderError, SetupError
from topic_preview.models.messages import MESSAGE_PACKAGE, message_type_for
from topic_preview.preview import PreviewLoop
from topic_preview.render import OpenCVWindow, Renderer
from topic_preview.stream import (
    PREVIEW_QOS,
    MessageTypeName,
    Name,
    NodeName,
    TransportContext,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Window Event Pump
# =============================================================================

async def pump_window(
    renderer: Renderer,
    stop_event: asyncio.Event,
    interval: float,
) -> None:
    """Keep the GUI responsive; request shutdown once the window is closed."""
    while not stop_event.is_set():
        if not renderer.poll_events():
            stop_event.set()
            break
        await asyncio.sleep(interval)


def _install_signal_handlers(stop_event: asyncio.Event) -> List[signal.Signals]:
    """Route SIGINT/SIGTERM to the stop event. Returns the signals handled."""
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread.
            logger.debug(f"Cannot install handler for {sig.name}")
    return installed


def _remove_signal_handlers(signals: List[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for sig in signals:
        loop.remove_signal_handler(sig)


# =============================================================================
# Pipeline
# =============================================================================

async def run_preview(
    settings: Settings,
    renderer: Optional[Renderer] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> PreviewLoop:
    """
    Subscribe and render until stopped.

    Args:
        settings: Loaded configuration
        renderer: Display surface; an OpenCVWindow is created if None
        stop_event: External stop signal; SIGINT/SIGTERM also set it

    Returns:
        The finished PreviewLoop (for its metrics)

    Raises:
        SetupError: If any part of the pipeline cannot be created
        RenderError: If the display surface fails
    """
    if stop_event is None:
        stop_event = asyncio.Event()
    signals = _install_signal_handlers(stop_event)
    try:
        return await _run_pipeline(settings, renderer, stop_event)
    finally:
        _remove_signal_handlers(signals)


async def _run_pipeline(
    settings: Settings,
    renderer: Optional[Renderer],
    stop_event: asyncio.Event,
) -> PreviewLoop:
    topic_name = settings.subscription.topic
    try:
        message_type = message_type_for(settings.subscription.message_type)
    except ValueError as e:
        raise SetupError(str(e)) from e

    with TransportContext(settings.transport.endpoint) as context:
        node = context.new_node(NodeName(settings.node.namespace, settings.node.name))
        topic = node.create_topic(
            Name("/", topic_name),
            MessageTypeName(MESSAGE_PACKAGE, message_type.TYPE_NAME),
        )
        subscription = node.create_subscription(topic, message_type, PREVIEW_QOS)

        if renderer is None:
            try:
                renderer = OpenCVWindow(
                    topic_name,
                    preserve_aspect_ratio=settings.display.preserve_aspect_ratio,
                    start_hidden=True,
                )
            except RenderError as e:
                await subscription.close()
                raise SetupError(f"Failed to create preview window: {e}") from e

        preview = PreviewLoop(
            topic_name,
            renderer,
            target_width=settings.display.target_width,
            decode_timeout=settings.display.decode_timeout_seconds,
        )
        pump_task = asyncio.create_task(
            pump_window(renderer, stop_event, settings.display.poll_interval_ms / 1000.0),
            name="window_pump",
        )

        logger.info(
            f"Previewing {topic.name} [{topic.type_name}] from {settings.transport.endpoint}"
        )

        try:
            async with subscription:
                await preview.run(subscription, stop_event)
        finally:
            stop_event.set()
            pump_task.cancel()
            try:
                await pump_task
            except asyncio.CancelledError:
                pass
            renderer.close()

    logger.info(f"Subscription metrics: {subscription.metrics_dict()}")
    return preview


def main() -> int:
    """Console entry point. Returns the process exit status."""
    try:
        settings = load_config()
    except (ValidationError, ValueError, yaml.YAMLError, OSError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.critical(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings)

    try:
        asyncio.run(run_preview(settings))
    except SetupError as e:
        logger.critical(f"Setup failed: {e}")
        return 1
    except RenderError as e:
        logger.critical(f"Display failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")

    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
