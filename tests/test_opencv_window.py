"""
OpenCV Window Tests
===================

Deferred window creation, checked without a display by replacing the
highgui calls.
"""

import cv2
import numpy as np
import pytest

from topic_preview.errors import RenderError
from topic_preview.models import NormalizedBitmap
from topic_preview.render import OpenCVWindow


def _bitmap(width=4, height=2):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :, 0] = 255  # red
    return NormalizedBitmap.from_array(pixels)


class TestHiddenWindow:

    def test_nothing_created_while_hidden(self, highgui):
        window = OpenCVWindow("t")
        window.set_inner_size(1280, 960)
        window.set_image("t", _bitmap())

        assert highgui == []
        assert not window.is_visible()
        assert window.surface_size() == (1280, 960)
        assert window.poll_events() is True

    def test_show_applies_stored_state(self, highgui):
        window = OpenCVWindow("t")
        window.set_inner_size(1280, 640)
        window.set_image("t", _bitmap())
        window.set_visible(True)

        assert [c[0] for c in highgui] == ["namedWindow", "resizeWindow", "imshow"]
        assert highgui[1] == ("resizeWindow", 1280, 640)
        shown = highgui[2][1]
        assert tuple(shown[0, 0]) == (0, 0, 255)  # BGR for highgui
        assert window.is_visible()

    def test_invalid_size(self, highgui):
        with pytest.raises(RenderError):
            OpenCVWindow("t").set_inner_size(0, 10)

    def test_close_destroys_created_window(self, highgui):
        window = OpenCVWindow("t")
        window.set_visible(True)
        window.close()

        assert highgui[-1] == ("destroyWindow", "t")
        assert not window.is_visible()


class TestEvents:

    def test_quit_key(self, highgui, monkeypatch):
        window = OpenCVWindow("t", start_hidden=False)
        monkeypatch.setattr(cv2, "waitKey", lambda delay: ord("q"))
        assert window.poll_events() is False

    def test_window_closed_by_user(self, highgui, monkeypatch):
        window = OpenCVWindow("t", start_hidden=False)
        monkeypatch.setattr(cv2, "getWindowProperty", lambda name, prop: 0.0)
        assert window.poll_events() is False

    def test_create_failure_is_render_error(self, monkeypatch):
        def fail(name, flags):
            raise cv2.error("no display")

        monkeypatch.setattr(cv2, "namedWindow", fail)
        with pytest.raises(RenderError):
            OpenCVWindow("t", start_hidden=False)
