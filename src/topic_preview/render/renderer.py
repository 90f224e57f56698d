"""
Renderer Protocol
=================

Interface between the preview loop and a display surface.

All calls are made from the asyncio event-loop thread. Implementations
backed by a GUI toolkit must create their window on that same thread.

Implementations:
    - OpenCVWindow: highgui window (production)
    - Test doubles recording calls (tests/conftest.py)
"""

from typing import Optional, Protocol, Tuple

from topic_preview.models.bitmap import NormalizedBitmap


class Renderer(Protocol):
    """
    Protocol for display surfaces.

    A renderer can hold several independently keyed images; the preview
    loop uses exactly one key (the topic name).
    """

    def set_image(self, key: str, bitmap: NormalizedBitmap) -> None:
        """Set or replace the image displayed under ``key``."""
        ...

    def surface_size(self) -> Optional[Tuple[int, int]]:
        """Current (width, height) of the surface, or None if unsized."""
        ...

    def is_visible(self) -> bool:
        ...

    def set_inner_size(self, width: int, height: int) -> None:
        """Resize the drawable area."""
        ...

    def set_visible(self, visible: bool) -> None:
        ...

    def poll_events(self) -> bool:
        """
        Process pending GUI events.

        Returns:
            False once the user asked to close the surface.
        """
        ...

    def close(self) -> None:
        ...
