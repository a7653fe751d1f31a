"""Client-side sync progress.

The server is stateless between calls; a client holds its own watermark
and walks INITIAL -> probe size -> fetch -> ADVANCE on every poll.
"""

from __future__ import annotations

from dataclasses import dataclass

from exposure_server.core.errors import ArgumentRangeError
from exposure_server.core.models import MessageListResponse


@dataclass
class SyncCursor:
    last_timestamp: int = 0

    def __post_init__(self) -> None:
        if self.last_timestamp < 0:
            raise ArgumentRangeError("last_timestamp", self.last_timestamp)

    def advance(self, response: MessageListResponse) -> bool:
        """Move the watermark forward. Returns True if it moved.

        An empty response carries a watermark of 0 and never moves the
        cursor backwards.
        """
        if response.max_response_timestamp > self.last_timestamp:
            self.last_timestamp = response.max_response_timestamp
            return True
        return False
