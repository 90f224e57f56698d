"""
OpenCV Window
=============

Renderer backed by an OpenCV highgui window.

highgui cannot create a hidden window, so a window constructed with
``start_hidden=True`` is only created by ``set_visible(True)``. Size and
images set before that are kept and applied when the window appears.

Controls: q / ESC close the window.
"""

import logging
from typing import Dict, Optional, Tuple

import cv2

from topic_preview.errors import RenderError
from topic_preview.models.bitmap import NormalizedBitmap


logger = logging.getLogger(__name__)


_QUIT_KEYS = (ord("q"), 27)


class OpenCVWindow:
    """
    Single highgui window implementing the Renderer protocol.

    Attributes:
        title: Window title (also the highgui window name)
        preserve_aspect_ratio: Keep image proportions when the user resizes
    """

    def __init__(
        self,
        title: str,
        preserve_aspect_ratio: bool = True,
        start_hidden: bool = True,
    ) -> None:
        self.title = title
        self.preserve_aspect_ratio = preserve_aspect_ratio

        self._images: Dict[str, NormalizedBitmap] = {}
        self._current_key: Optional[str] = None
        self._size: Optional[Tuple[int, int]] = None
        self._created = False
        self._visible = False

        if not start_hidden:
            self.set_visible(True)

    def _flags(self) -> int:
        flags = cv2.WINDOW_NORMAL
        if self.preserve_aspect_ratio:
            flags |= cv2.WINDOW_KEEPRATIO
        else:
            flags |= cv2.WINDOW_FREERATIO
        return flags

    def _draw(self) -> None:
        if not self._visible or self._current_key is None:
            return
        bitmap = self._images[self._current_key]
        # highgui expects BGR
        frame = cv2.cvtColor(bitmap.pixels, cv2.COLOR_RGB2BGR)
        try:
            cv2.imshow(self.title, frame)
        except cv2.error as e:
            raise RenderError(f"Failed to draw into window {self.title!r}: {e}") from e

    def set_image(self, key: str, bitmap: NormalizedBitmap) -> None:
        self._images[key] = bitmap
        self._current_key = key
        self._draw()

    def surface_size(self) -> Optional[Tuple[int, int]]:
        return self._size

    def is_visible(self) -> bool:
        return self._visible

    def set_inner_size(self, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise RenderError(f"Invalid window size {width}x{height}")
        self._size = (width, height)
        if self._created:
            try:
                cv2.resizeWindow(self.title, width, height)
            except cv2.error as e:
                raise RenderError(f"Failed to resize window {self.title!r}: {e}") from e

    def set_visible(self, visible: bool) -> None:
        if not visible:
            if self._created:
                cv2.destroyWindow(self.title)
                self._created = False
            self._visible = False
            return

        if self._visible:
            return

        try:
            cv2.namedWindow(self.title, self._flags())
            if self._size is not None:
                cv2.resizeWindow(self.title, *self._size)
        except cv2.error as e:
            raise RenderError(f"Failed to create window {self.title!r}: {e}") from e

        self._created = True
        self._visible = True
        logger.info(f"Window {self.title!r} shown at {self._size}")
        self._draw()

    def poll_events(self) -> bool:
        if not self._visible:
            return True

        key = cv2.waitKey(1) & 0xFF
        if key in _QUIT_KEYS:
            logger.info("Quit key pressed")
            return False

        try:
            if cv2.getWindowProperty(self.title, cv2.WND_PROP_VISIBLE) < 1:
                logger.info("Window closed by user")
                return False
        except cv2.error:
            return False

        return True

    def close(self) -> None:
        if self._created:
            try:
                cv2.destroyWindow(self.title)
            except cv2.error as e:
                logger.debug(f"destroyWindow failed: {e}")
            self._created = False
        self._visible = False
