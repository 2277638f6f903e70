"""Tests for the patient record and API schemas."""

import pytest
from pydantic import ValidationError

from services.triage.src.triage.schemas.enums import TriageLevel
from services.triage.src.triage.schemas.patient import Patient
from services.triage.src.triage.schemas.responses import IntakeRequest, PatientResponse


class TestPatient:
    def test_defaults(self):
        p = Patient(id=1)
        assert p.name == "N/A"
        assert p.language == "English"
        assert p.preferred_mode == "Standard"
        assert p.triage_level is None
        assert p.internal_time is None

    @pytest.mark.parametrize("field, value", [
        ("id", 2),
        ("name", "Someone Else"),
        ("email", "x@example.com"),
        ("health_card", "0000"),
        ("chief_complaint", "different"),
    ])
    def test_intake_fields_are_frozen(self, field, value):
        p = Patient(id=1, name="Jane", email="jane@example.com")
        with pytest.raises(ValidationError):
            setattr(p, field, value)

    def test_level_and_wait_start_are_mutable(self):
        p = Patient(id=1, triage_level=4)
        p.triage_level = 3
        p.internal_time = 99.0
        assert p.triage_level == 3
        assert p.internal_time == 99.0

    def test_negative_age_rejected(self):
        with pytest.raises(ValidationError):
            Patient(id=1, age=-1)


class TestTriageLevel:
    def test_levels_run_one_to_five(self):
        assert [int(level) for level in TriageLevel] == [1, 2, 3, 4, 5]
        assert TriageLevel.NON_URGENT == 5


class TestIntakeRequest:
    def test_to_patient_uses_allocated_id(self):
        body = IntakeRequest(name="Ana", triage_level=2, email="ana@example.com")
        patient = body.to_patient(17)
        assert patient.id == 17
        assert patient.name == "Ana"
        assert patient.triage_level == 2
        assert patient.email == "ana@example.com"

    def test_default_level_is_non_urgent(self):
        assert IntakeRequest().triage_level == 5


class TestPatientResponse:
    def test_wait_seconds_from_clock(self):
        patient = Patient(id=3, triage_level=2, internal_time=100.0)
        response = PatientResponse.from_patient(patient, now=160.7)
        assert response.wait_seconds == 60
        assert response.triage_level == 2
