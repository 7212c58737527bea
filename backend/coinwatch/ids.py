"""
Identifier generation for stored entities.
"""

import threading
import time


class IdGenerator:
    """Issues ``id_<unix-ms>_<counter>`` identifiers; the counter is never reused until reset."""

    def __init__(self):
        self._counter = 1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            counter = self._counter
            self._counter += 1
        return f"id_{int(time.time() * 1000)}_{counter}"

    def reset(self):
        """Restart sequencing (test isolation only)."""
        with self._lock:
            self._counter = 1
