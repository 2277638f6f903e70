"""Five-level triage scheduler.

Owns one TriageLevelQueue per level and is the only way patients enter,
move between, or leave the queues. Every operation runs under a single
scheduler-wide lock, so a patient relocated by move_patient is never
observable in two queues or in none.

Levels are scanned 1 -> 5; within a level patients are served in arrival
order.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from services.triage.src.triage.core.errors import (
    DuplicatePatientError,
    InvalidLevelError,
    NotFoundError,
    SchedulerClosedError,
)
from services.triage.src.triage.core.level_queue import TriageLevelQueue
from services.triage.src.triage.core.ring_buffer import DEFAULT_CAPACITY
from services.triage.src.triage.schemas.enums import TriageLevel
from services.triage.src.triage.schemas.patient import Patient

logger = logging.getLogger(__name__)

LEVELS = tuple(int(level) for level in TriageLevel)
DEFAULT_LEVEL = int(TriageLevel.NON_URGENT)


def validate_level(level: object) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidLevelError(f"Triage level must be an integer, got {level!r}")
    if level < LEVELS[0] or level > LEVELS[-1]:
        raise InvalidLevelError(f"Triage level out of range: {level}")
    return level


def normalize_level(level: object) -> int:
    """Return level if it is an integer in 1-5, otherwise the non-urgent level."""
    try:
        return validate_level(level)
    except InvalidLevelError:
        return DEFAULT_LEVEL


class TriageScheduler:
    """Shared patient queues for all five triage levels.

    The lock is re-entrant so a caller holding it (the aging monitor) can
    run several scheduler operations as one critical section.

    Reads and move_patient hand out copies of the queued records. Only the
    scheduler changes the records it holds.
    """

    def __init__(
        self,
        initial_capacity: int = DEFAULT_CAPACITY,
        *,
        lock: threading.RLock | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._queues = tuple(
            TriageLevelQueue(initial_capacity, level=level) for level in LEVELS
        )
        self._lock = lock if lock is not None else threading.RLock()
        self._clock = clock
        # patient id -> level of the queue currently holding it
        self._index: dict[int, int] = {}
        self._closed = False

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    @contextmanager
    def locked(self) -> Iterator["TriageScheduler"]:
        """Hold the scheduler lock across several operations."""
        with self._lock:
            yield self

    def _queue(self, level: int) -> TriageLevelQueue:
        return self._queues[level - 1]

    def _ensure_open(self) -> None:
        if self._closed:
            raise SchedulerClosedError("Scheduler has been closed")

    # -- mutation -----------------------------------------------------------

    def enqueue(self, patient: Patient) -> int:
        """Add patient at the back of its level queue.

        Returns the 1-based position of the patient in that queue.
        """
        level = normalize_level(patient.triage_level)
        with self._lock:
            self._ensure_open()
            if patient.id in self._index:
                raise DuplicatePatientError(f"Patient {patient.id} is already waiting")

            if patient.triage_level is not None and level != patient.triage_level:
                logger.warning("triage_level_defaulted", extra={
                    "patient_id": patient.id,
                    "requested_level": patient.triage_level,
                    "triage_level": level,
                })
            patient.triage_level = level
            if patient.internal_time is None:
                patient.internal_time = self._clock()

            queue = self._queue(level)
            queue.push(patient)
            self._index[patient.id] = level
            position = queue.size()

        logger.info("patient_enqueued", extra={
            "patient_id": patient.id, "triage_level": level, "queue_position": position,
        })
        return position

    def call_next(self) -> Patient:
        """Remove and return the most urgent, longest-waiting patient."""
        with self._lock:
            self._ensure_open()
            for queue in self._queues:
                if not queue.is_empty():
                    patient = queue.pop()
                    del self._index[patient.id]
                    break
            else:
                raise NotFoundError("No patients waiting")

        logger.info("patient_called", extra={
            "patient_id": patient.id, "triage_level": patient.triage_level,
        })
        return patient

    def move_patient(self, patient_id: int, target_level: int) -> Patient:
        """Relocate a waiting patient to the back of target_level's queue.

        The removal and the insertion happen in one critical section. The
        patient's wait window restarts at the new level.
        """
        target = normalize_level(target_level)
        with self._lock:
            self._ensure_open()
            current = self._index.get(patient_id)
            if current is None:
                raise NotFoundError(f"Patient {patient_id} is not waiting")

            patient = self._queue(current).remove_by_id(patient_id)
            patient.triage_level = target
            patient.internal_time = self._clock()
            self._queue(target).push(patient)
            self._index[patient_id] = target
            moved = patient.model_copy()

        logger.info("patient_moved", extra={
            "patient_id": patient_id, "from_level": current, "to_level": target,
        })
        return moved

    def close(self) -> None:
        """Stop accepting changes. Reads keep working."""
        with self._lock:
            self._closed = True
        logger.info("scheduler_closed", extra={"waiting": len(self)})

    @property
    def closed(self) -> bool:
        return self._closed

    # -- reads --------------------------------------------------------------

    def peek_next(self) -> Patient:
        """Return the patient call_next would return, without removing it."""
        with self._lock:
            for queue in self._queues:
                if not queue.is_empty():
                    return queue.peek().model_copy()
        raise NotFoundError("No patients waiting")

    def list_all(self) -> list[Patient]:
        """Snapshot of every waiting patient, levels 1 -> 5, arrival order within level."""
        with self._lock:
            return [patient.model_copy() for queue in self._queues for patient in queue]

    def list_level(self, level: int) -> list[Patient]:
        if level not in LEVELS:
            raise ValueError(f"Unknown triage level: {level}")
        with self._lock:
            return [patient.model_copy() for patient in self._queue(level)]

    def wait_windows(self) -> list[tuple[int, int, float]]:
        """(level, patient id, wait start) for every waiting patient.

        The level is that of the queue holding the patient.
        """
        with self._lock:
            return [
                (queue.level, patient.id, patient.internal_time)
                for queue in self._queues
                for patient in queue
            ]

    def sizes(self) -> dict[int, int]:
        with self._lock:
            return {queue.level: queue.size() for queue in self._queues}

    def position_of(self, patient_id: int) -> tuple[int, int]:
        """Return (level, 1-based position) of a waiting patient."""
        with self._lock:
            level = self._index.get(patient_id)
            if level is None:
                raise NotFoundError(f"Patient {patient_id} is not waiting")
            return level, self._queue(level).index_of(patient_id) + 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def __contains__(self, patient_id: object) -> bool:
        with self._lock:
            return patient_id in self._index
