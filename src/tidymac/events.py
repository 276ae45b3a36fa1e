"""Serialized delivery of discovery events.

Scanner workers run on pool threads but ``on_found`` callbacks must run on the
caller's thread. Workers post to an :class:`EventChannel`; the collector
drains it between completions.
"""

import queue
from pathlib import Path
from typing import Callable, Optional

from tidymac.models import CleanCategory

FoundCallback = Callable[[Path, int, CleanCategory], None]  # (path, size, category)


class EventChannel:
    """Thread-safe mailbox with a single consumer."""

    def __init__(self, on_found: Optional[FoundCallback] = None):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._on_found = on_found

    def found(self, path: Path, size: int, category: CleanCategory) -> None:
        """Post a discovery. Safe to call from any thread."""
        if self._on_found is not None:
            self._queue.put((path, size, category))

    def drain(self) -> int:
        """Deliver every queued event. Call only from the consuming thread."""
        delivered = 0
        while True:
            try:
                path, size, category = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            self._on_found(path, size, category)
            delivered += 1
