"""Patient id allocation for intake."""

import threading


class IdentityAllocator:
    """Hands out monotonically increasing patient ids.

    Ids supplied by upstream systems are recorded with observe() so that
    allocated ids never collide with them.
    """

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def observe(self, patient_id: int) -> None:
        with self._lock:
            if patient_id >= self._next:
                self._next = patient_id + 1
