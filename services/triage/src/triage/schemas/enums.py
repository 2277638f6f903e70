"""Enums for the triage queue."""

from enum import Enum, IntEnum


class TriageLevel(IntEnum):
    """Five-level acuity scale, 1 = most urgent."""
    RESUSCITATION = 1  # Immediate life threat
    EMERGENT = 2       # Potential threat to life or limb
    URGENT = 3         # Serious, needs timely intervention
    LESS_URGENT = 4    # Could deteriorate, not immediately dangerous
    NON_URGENT = 5     # Minor complaint; default for unknown levels


class NotificationEvent(str, Enum):
    """Reason a notification was sent for a patient."""
    INTAKE = "intake"
    ESCALATION = "escalation"
