"""
topic-preview
=============

Live image preview for a publish/subscribe image topic.

This package subscribes to a single topic carrying image messages, decodes
every message into an RGB bitmap and pushes it to an on-screen window.

Components:
    - models: Message schema and the normalized bitmap
    - stream: Transport, QoS, wire codec, subscription and frame decoder
    - render: Renderer protocol and the OpenCV window
    - preview: The subscription-to-render loop

Example:
    from topic_preview.main import main

    raise SystemExit(main())
"""

__version__ = "0.1.0"
__author__ = "topic-preview developers"

__all__ = [
    "__version__",
]
