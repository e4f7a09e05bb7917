from __future__ import annotations

import threading

from .types import Callback


class CallbackSlot:
    """Single-slot handoff between billing events and the frame loop.

    ``complete`` may run on any thread and only records the result. The
    recorded result reaches the armed callback during the next ``drain``,
    which the host calls once per tick. Capacity is one: ``setup`` drops any
    result that has not been drained yet, so a second operation started
    before the first one is drained takes over the slot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._invoke = False
        self._callback: Callback | None = None
        self._success = False
        self._message = ""

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._invoke

    @property
    def has_callback(self) -> bool:
        with self._lock:
            return self._callback is not None

    def setup(self, callback: Callback | None) -> None:
        with self._lock:
            self._invoke = False
            self._callback = callback
            self._success = False
            self._message = ""

    def retarget(self, callback: Callback | None) -> None:
        """Swap the armed callback, keeping any result not yet drained."""
        with self._lock:
            self._callback = callback

    def complete(self, success: bool, message: str) -> None:
        with self._lock:
            self._success = success
            self._message = message
            self._invoke = True

    def drain(self) -> bool:
        """Deliver a pending result. Returns True if a callback ran."""
        with self._lock:
            if not self._invoke:
                return False
            self._invoke = False
            callback = self._callback
            if callback is None:
                return False
            success, message = self._success, self._message
            self._callback = None
            self._success = False
            self._message = ""
        callback(success, message)
        return True
