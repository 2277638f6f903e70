"""Patient record carried through the triage queues."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Patient(BaseModel):
    """A waiting patient.

    Identity and intake details are frozen once the record is built. Only
    the triage level and the start of the current wait window change while
    the patient moves between queues.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: int = Field(..., frozen=True, description="Externally assigned patient id")
    name: str = Field("N/A", frozen=True)
    age: int = Field(0, ge=0, frozen=True)
    sex: str = Field("Unknown", frozen=True)
    birth_day: str = Field("N/A", frozen=True)
    health_card: str = Field("N/A", frozen=True)
    email: str | None = Field(None, frozen=True)
    chief_complaint: str = Field("N/A", frozen=True)
    accessibility_profile: str = Field("None", frozen=True)
    preferred_mode: str = Field("Standard", frozen=True)
    ui_setting: str = Field("Default", frozen=True)
    language: str = Field("English", frozen=True)

    # Unset or out-of-range values are normalized by the scheduler on enqueue
    triage_level: int | None = Field(None, description="1 (most urgent) to 5")
    internal_time: float | None = Field(
        None, description="Monotonic seconds at the start of the current wait"
    )
