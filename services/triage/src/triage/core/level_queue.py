"""Per-level patient queue with removal by identity."""

from __future__ import annotations

from services.triage.src.triage.core.errors import NotFoundError
from services.triage.src.triage.core.ring_buffer import DEFAULT_CAPACITY, RingBuffer
from services.triage.src.triage.schemas.patient import Patient


class TriageLevelQueue(RingBuffer[Patient]):
    """Arrival-ordered queue of patients sharing one triage level."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, level: int | None = None):
        super().__init__(capacity)
        self.level = level

    def __repr__(self) -> str:
        return f"<TriageLevelQueue level={self.level} size={self.size()}>"

    def index_of(self, patient_id: int) -> int:
        """Return the 0-based position of patient_id from the front."""
        for offset in range(self._count):
            if self._slots[self._physical(offset)].id == patient_id:
                return offset
        raise NotFoundError(f"Patient {patient_id} not in level {self.level} queue")

    def __contains__(self, patient_id: object) -> bool:
        try:
            self.index_of(patient_id)
        except NotFoundError:
            return False
        return True

    def remove_by_id(self, patient_id: int) -> Patient:
        """Remove and return the patient with patient_id.

        Every patient behind the removed one shifts one slot toward the
        head, so the remaining arrival order is unchanged.
        """
        offset = self.index_of(patient_id)
        removed = self._slots[self._physical(offset)]

        for k in range(offset, self._count - 1):
            self._slots[self._physical(k)] = self._slots[self._physical(k + 1)]

        self._slots[self._physical(self._count - 1)] = None
        self._count -= 1
        self._version += 1
        return removed
