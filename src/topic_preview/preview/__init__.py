"""
Preview Module
==============

The subscription-to-render loop.

Components:
    - PreviewLoop: Drives items through the decoder into a renderer
    - PreviewState: UNINITIALIZED / ACTIVE
    - display_geometry: Aspect-preserving surface size for a frame
"""

from topic_preview.preview.loop import (
    DEFAULT_DECODE_TIMEOUT,
    DEFAULT_DECODE_WORKERS,
    DEFAULT_TARGET_WIDTH,
    PreviewLoop,
    PreviewLoopMetrics,
    PreviewState,
    display_geometry,
)

__all__ = [
    "DEFAULT_DECODE_TIMEOUT",
    "DEFAULT_DECODE_WORKERS",
    "DEFAULT_TARGET_WIDTH",
    "PreviewLoop",
    "PreviewLoopMetrics",
    "PreviewState",
    "display_geometry",
]
