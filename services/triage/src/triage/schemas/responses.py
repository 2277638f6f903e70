"""Pydantic request/response models for queue API endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from services.triage.src.triage.schemas.patient import Patient


# -- Requests ---------------------------------------------------------------

class IntakeRequest(BaseModel):
    id: int | None = None
    name: str = "N/A"
    age: int = Field(0, ge=0)
    sex: str = "Unknown"
    birth_day: str = "N/A"
    health_card: str = "N/A"
    email: str | None = None
    chief_complaint: str = "N/A"
    # Out-of-range levels are accepted and queued as non-urgent
    triage_level: int | None = 5
    accessibility_profile: str = "None"
    preferred_mode: str = "Standard"
    ui_setting: str = "Default"
    language: str = "English"

    def to_patient(self, patient_id: int) -> Patient:
        return Patient(id=patient_id, **self.model_dump(exclude={"id"}))


class MoveRequest(BaseModel):
    triage_level: int


# -- Responses ---------------------------------------------------------------

class IntakeResponse(BaseModel):
    status: str = "success"
    patient_id: int
    triage_level: int
    queue_position: int


class PatientResponse(BaseModel):
    id: int
    name: str
    age: int
    sex: str
    birth_day: str
    health_card: str
    email: str | None
    chief_complaint: str
    triage_level: int
    accessibility_profile: str
    preferred_mode: str
    ui_setting: str
    language: str
    wait_seconds: int

    @classmethod
    def from_patient(cls, patient: Patient, now: float) -> "PatientResponse":
        waited = now - patient.internal_time if patient.internal_time is not None else 0
        return cls(
            **patient.model_dump(exclude={"internal_time"}),
            wait_seconds=max(0, int(waited)),
        )


class QueueSummaryResponse(BaseModel):
    total: int
    levels: dict[int, int]
