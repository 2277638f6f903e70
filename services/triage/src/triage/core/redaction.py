"""Redaction helpers for safe logging of patient data."""

import hashlib
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from services.triage.src.triage.schemas.patient import Patient


# Patterns that should be redacted in free-text fields
_SENSITIVE_PATTERNS = [
    re.compile(r"\b\d{4}-\d{3}-\d{3}(-[A-Z]{2})?\b"),  # Health card
    re.compile(r"\b\d{10,11}\b"),  # Phone numbers
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),  # Email
]

_SENSITIVE_KEYS = {"name", "email", "health_card", "birth_day", "phone", "address"}


def redact_value(value: str) -> str:
    """Hash a sensitive string value for safe logging."""
    return f"REDACTED:{hashlib.sha256(value.encode()).hexdigest()[:12]}"


def redact_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively redact sensitive fields from a dictionary."""
    result = {}
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS:
            result[key] = redact_value(str(value)) if value else None
        elif isinstance(value, dict):
            result[key] = redact_dict(value)
        elif isinstance(value, str):
            redacted = value
            for pattern in _SENSITIVE_PATTERNS:
                redacted = pattern.sub("[REDACTED]", redacted)
            result[key] = redacted
        else:
            result[key] = value
    return result


def redact_patient(patient: "Patient") -> dict[str, Any]:
    """Loggable view of a patient with identifying fields hashed."""
    return redact_dict(patient.model_dump(exclude={"internal_time"}))
