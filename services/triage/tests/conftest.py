"""Pytest configuration and shared fixtures."""

import os

import pytest

from services.triage.src.triage.core.scheduler import TriageScheduler
from services.triage.src.triage.schemas.patient import Patient


def pytest_configure(config):
    """Configure test environment before collection."""
    os.environ.setdefault("AGING_ENABLED", "false")
    os.environ.setdefault("NOTIFICATION_WEBHOOK_URL", "")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return TriageScheduler(4, clock=clock)


@pytest.fixture
def make_patient():
    """Factory for patients with sequential ids unless one is given."""
    counter = iter(range(1, 10_000))

    def _make(triage_level=5, patient_id=None, **fields) -> Patient:
        pid = patient_id if patient_id is not None else next(counter)
        fields.setdefault("name", f"Patient {pid}")
        return Patient(id=pid, triage_level=triage_level, **fields)

    return _make
