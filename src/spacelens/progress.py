"""Shared counters sampled by progress renderers while work runs."""

import threading


class AtomicCounter:
    """Integer counter that is safe to bump from several threads.

    The lock is only held for the increment itself, so readers polling
    ``value`` never wait on filesystem I/O.
    """

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0


class ScanProgress:
    """Live counters for one scan."""

    def __init__(self):
        self.files = AtomicCounter()
        self.dirs = AtomicCounter()
        self.bytes = AtomicCounter()
        self.current_path = ""

    def snapshot(self) -> tuple[int, int, int]:
        """Return (files, dirs, bytes) as seen right now."""
        return self.files.value, self.dirs.value, self.bytes.value
