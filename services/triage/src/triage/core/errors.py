"""Exceptions raised by the triage queue engine.

EmptyError and NotFoundError are recoverable and go back to the immediate
caller. A failed allocation while growing a buffer surfaces as MemoryError
and is deliberately never caught.
"""


class TriageError(Exception):
    """Base class for triage queue errors."""

    pass


class EmptyError(TriageError):
    """Raised on pop/peek of a buffer with no elements."""

    pass


class NotFoundError(TriageError):
    """Raised when a patient id is not waiting in any queue."""

    pass


class InvalidLevelError(TriageError):
    """Raised for a triage level outside 1-5.

    Not surfaced by the scheduler: intake and moves normalize invalid
    levels to 5 instead.
    """

    pass


class DuplicatePatientError(TriageError):
    """Raised when enqueueing a patient id that is already waiting."""

    pass


class SchedulerClosedError(TriageError):
    """Raised when mutating a scheduler after close()."""

    pass
