"""
Error Types
===========

Exceptions shared across the transport, render and entry layers.

Error Policy:
    - TransportError: one item failed to arrive intact; skip it
    - SetupError: the pipeline cannot be built; terminate
    - RenderError: the display surface failed; terminate
    - SubscriptionClosedError: a finished subscription was iterated again

Frame decoding errors live next to the decoder in
``topic_preview.stream.image_decoder``.
"""


class SetupError(Exception):
    """Raised when a node, topic, subscription or window cannot be created."""
    pass


class TransportError(Exception):
    """Raised for a single message that could not be received or parsed."""
    pass


class SubscriptionClosedError(Exception):
    """Raised when iterating a subscription that has already ended."""
    pass


class RenderError(Exception):
    """Raised when the display surface cannot be created or updated."""
    pass
