"""
Render Module
=============

Display surfaces for decoded frames.

Components:
    - Renderer: Protocol consumed by the preview loop
    - OpenCVWindow: highgui implementation
"""

from topic_preview.render.renderer import Renderer
from topic_preview.render.opencv_window import OpenCVWindow

__all__ = [
    "Renderer",
    "OpenCVWindow",
]
