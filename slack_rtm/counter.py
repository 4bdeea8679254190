"""Thread-safe frame counter used to stamp outbound message ids."""

from __future__ import annotations

import threading


class FrameCounter:
    """Monotonic counter shared between the transport and caller threads.

    The connection increments it once per inbound text frame; outbound
    messages are stamped with the latest value.
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Counter start must not be negative")
        self._value = start
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Advance the counter and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    next = increment

    def current(self) -> int:
        """Return the last issued value without advancing."""
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"FrameCounter({self.current()})"
