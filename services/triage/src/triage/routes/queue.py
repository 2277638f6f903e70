"""Triage queue API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from services.triage.src.triage.core.errors import (
    DuplicatePatientError,
    NotFoundError,
    SchedulerClosedError,
)
from services.triage.src.triage.core.identity import IdentityAllocator
from services.triage.src.triage.core.notifications import NotificationDispatcher
from services.triage.src.triage.core.scheduler import TriageScheduler
from services.triage.src.triage.schemas.enums import NotificationEvent
from services.triage.src.triage.schemas.responses import (
    IntakeRequest,
    IntakeResponse,
    MoveRequest,
    PatientResponse,
    QueueSummaryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _scheduler(request: Request) -> TriageScheduler:
    return request.app.state.scheduler


def _dispatcher(request: Request) -> NotificationDispatcher | None:
    return getattr(request.app.state, "dispatcher", None)


def _allocator(request: Request) -> IdentityAllocator:
    return request.app.state.allocator


def _to_response(scheduler: TriageScheduler, patient) -> PatientResponse:
    return PatientResponse.from_patient(patient, scheduler.clock())


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------

@router.post("/intake", response_model=IntakeResponse)
def intake(
    body: IntakeRequest,
    scheduler: TriageScheduler = Depends(_scheduler),
    dispatcher: NotificationDispatcher | None = Depends(_dispatcher),
    allocator: IdentityAllocator = Depends(_allocator),
) -> IntakeResponse:
    """Register a patient and place them in their triage queue."""
    if body.id is None:
        patient_id = allocator.next_id()
    else:
        patient_id = body.id
        allocator.observe(patient_id)

    patient = body.to_patient(patient_id)
    try:
        position = scheduler.enqueue(patient)
    except DuplicatePatientError:
        raise HTTPException(409, f"Patient {patient_id} is already waiting")
    except SchedulerClosedError:
        raise HTTPException(503, "Triage queue is shutting down")

    if dispatcher is not None:
        dispatcher.submit(patient, patient.triage_level, NotificationEvent.INTAKE)

    return IntakeResponse(
        patient_id=patient_id,
        triage_level=patient.triage_level,
        queue_position=position,
    )


# ---------------------------------------------------------------------------
# Queue views
# ---------------------------------------------------------------------------

@router.get("/queue", response_model=list[PatientResponse])
def list_queue(scheduler: TriageScheduler = Depends(_scheduler)) -> list[PatientResponse]:
    """All waiting patients, most urgent level first."""
    now = scheduler.clock()
    return [PatientResponse.from_patient(p, now) for p in scheduler.list_all()]


@router.get("/queue/summary", response_model=QueueSummaryResponse)
def queue_summary(scheduler: TriageScheduler = Depends(_scheduler)) -> QueueSummaryResponse:
    sizes = scheduler.sizes()
    return QueueSummaryResponse(total=sum(sizes.values()), levels=sizes)


@router.get("/next_patient", response_model=PatientResponse)
def next_patient(scheduler: TriageScheduler = Depends(_scheduler)) -> PatientResponse:
    """Who would be called next, without calling them."""
    try:
        patient = scheduler.peek_next()
    except NotFoundError:
        raise HTTPException(404, "No patients waiting")
    return _to_response(scheduler, patient)


# ---------------------------------------------------------------------------
# Staff actions
# ---------------------------------------------------------------------------

@router.post("/call_next", response_model=PatientResponse)
def call_next(scheduler: TriageScheduler = Depends(_scheduler)) -> PatientResponse:
    """Remove the next patient from the queues and return them."""
    try:
        patient = scheduler.call_next()
    except NotFoundError:
        raise HTTPException(404, "No patients waiting")
    except SchedulerClosedError:
        raise HTTPException(503, "Triage queue is shutting down")
    return _to_response(scheduler, patient)


@router.post("/patients/{patient_id}/move", response_model=PatientResponse)
def move_patient(
    patient_id: int,
    body: MoveRequest,
    scheduler: TriageScheduler = Depends(_scheduler),
) -> PatientResponse:
    """Re-triage a waiting patient to another level."""
    try:
        patient = scheduler.move_patient(patient_id, body.triage_level)
    except NotFoundError:
        # Lost a race with call_next or the patient never existed
        logger.info("move_patient_not_found", extra={"patient_id": patient_id})
        raise HTTPException(404, f"Patient {patient_id} is not waiting")
    except SchedulerClosedError:
        raise HTTPException(503, "Triage queue is shutting down")
    return _to_response(scheduler, patient)
