"""
Quality of Service
==================

Subscription QoS policy and the fixed profile used by the preview pipeline.

Mapping onto the ZeroMQ transport:
    - History KEEP_LAST(depth): socket RCVHWM = depth and a drop-oldest
      receive buffer of the same depth
    - History KEEP_ALL: unbounded receive buffer
    - Reliability: TCP/IPC/inproc links are lossless per connection;
      max_blocking_time bounds each receive wait
    - Durability VOLATILE: SUB sockets only see messages published after
      they connect. TRANSIENT_LOCAL cannot be honoured and is rejected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from topic_preview.errors import SetupError


class History(str, Enum):
    KEEP_LAST = "keep_last"
    KEEP_ALL = "keep_all"


class Reliability(str, Enum):
    RELIABLE = "reliable"
    BEST_EFFORT = "best_effort"


class Durability(str, Enum):
    VOLATILE = "volatile"
    TRANSIENT_LOCAL = "transient_local"


@dataclass(frozen=True)
class QosProfile:
    """
    QoS policy for a subscription.

    Attributes:
        history: KEEP_LAST or KEEP_ALL
        depth: Number of unread messages retained (KEEP_LAST only)
        reliability: Delivery guarantee
        max_blocking_time: Seconds a receive attempt may block
        durability: Replay policy for late joiners
    """

    history: History = History.KEEP_LAST
    depth: int = 2
    reliability: Reliability = Reliability.RELIABLE
    max_blocking_time: float = 0.1
    durability: Durability = Durability.VOLATILE

    @property
    def buffer_size(self) -> Optional[int]:
        """Receive buffer bound, or None when unbounded."""
        if self.history is History.KEEP_ALL:
            return None
        return self.depth

    def validate(self) -> None:
        """
        Check the profile can be honoured by the transport.

        Raises:
            SetupError: On an unsupported or inconsistent policy
        """
        if self.history is History.KEEP_LAST and self.depth < 1:
            raise SetupError(f"KEEP_LAST history needs depth >= 1, got {self.depth}")
        if self.max_blocking_time <= 0:
            raise SetupError(
                f"max_blocking_time must be positive, got {self.max_blocking_time}"
            )
        if self.durability is Durability.TRANSIENT_LOCAL:
            raise SetupError("TRANSIENT_LOCAL durability is not supported by the transport")


# Keep the two newest frames, reliable with a 100 ms blocking budget, no replay.
PREVIEW_QOS = QosProfile(
    history=History.KEEP_LAST,
    depth=2,
    reliability=Reliability.RELIABLE,
    max_blocking_time=0.1,
    durability=Durability.VOLATILE,
)
