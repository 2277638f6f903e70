"""Wait-time aging: escalate patients who have waited too long at their level.

Each tick looks at every patient in levels 2-5 and compares the time since
their wait window started against the threshold for their current level.
A patient over the threshold moves up exactly one level and starts a new
wait window, so a single tick never jumps a patient more than one level.
Level 1 is never aged.

Scan and moves run under the scheduler lock. Notifications are submitted
after the lock is released.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from apscheduler.schedulers.background import BackgroundScheduler

from services.triage.src.triage.core.errors import NotFoundError
from services.triage.src.triage.core.notifications import NotificationDispatcher
from services.triage.src.triage.core.scheduler import TriageScheduler
from services.triage.src.triage.schemas.enums import NotificationEvent
from services.triage.src.triage.schemas.patient import Patient

logger = logging.getLogger(__name__)

# Seconds of wait at the current level before escalating one level
DEFAULT_THRESHOLDS: dict[int, int] = {
    2: 3600,
    3: 5400,
    4: 7200,
    5: 9000,
}

DEFAULT_INTERVAL_SECONDS = 25 * 60

_JOB_ID = "triage_aging_tick"


@dataclass
class Escalation:
    """One committed escalation step."""

    patient_id: int
    from_level: int
    to_level: int
    waited_seconds: float
    patient: Patient


class AgingMonitor:
    """Periodic escalation of stale waits through the scheduler."""

    def __init__(
        self,
        scheduler: TriageScheduler,
        dispatcher: NotificationDispatcher | None = None,
        *,
        thresholds: dict[int, int] | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        self.scheduler = scheduler
        self.dispatcher = dispatcher
        self.thresholds = dict(thresholds if thresholds is not None else DEFAULT_THRESHOLDS)
        # Level 1 is terminal whatever the configuration says
        self.thresholds.pop(1, None)
        self.interval_seconds = interval_seconds
        self._background: BackgroundScheduler | None = None

    def threshold_for(self, level: int) -> int | None:
        return self.thresholds.get(level)

    def tick(self) -> list[Escalation]:
        """Run one aging pass and return the escalations it committed."""
        escalations: list[Escalation] = []

        with self.scheduler.locked():
            if self.scheduler.closed:
                logger.info("aging_tick_skipped", extra={"reason": "scheduler_closed"})
                return escalations

            now = self.scheduler.clock()
            # Snapshot first so a patient moved this tick is not re-evaluated
            candidates = [
                (level, patient_id, started)
                for level, patient_id, started in self.scheduler.wait_windows()
                if level in self.thresholds
            ]

            for level, patient_id, started in candidates:
                elapsed = now - started
                if elapsed < self.thresholds[level]:
                    continue
                try:
                    moved = self.scheduler.move_patient(patient_id, level - 1)
                except NotFoundError:
                    logger.info("aging_patient_gone", extra={"patient_id": patient_id})
                    continue
                except Exception as exc:
                    logger.error("aging_escalation_failed", extra={
                        "patient_id": patient_id, "from_level": level, "error": str(exc),
                    })
                    continue
                escalations.append(Escalation(
                    patient_id=patient_id,
                    from_level=level,
                    to_level=level - 1,
                    waited_seconds=elapsed,
                    patient=moved,
                ))

        for escalation in escalations:
            logger.info("patient_escalated", extra={
                "patient_id": escalation.patient_id,
                "from_level": escalation.from_level,
                "to_level": escalation.to_level,
                "waited_seconds": int(escalation.waited_seconds),
            })
            if self.dispatcher is None:
                continue
            try:
                self.dispatcher.submit(
                    escalation.patient, escalation.to_level, NotificationEvent.ESCALATION
                )
            except Exception as exc:
                logger.error("notification_submit_failed", extra={
                    "patient_id": escalation.patient_id, "error": str(exc),
                })

        logger.info("aging_tick_complete", extra={
            "escalated": len(escalations), "waiting": len(self.scheduler),
        })
        return escalations

    def _run_tick(self) -> None:
        # Errors must not kill the background job
        try:
            self.tick()
        except Exception:
            logger.exception("aging_tick_failed")

    # -- background job -----------------------------------------------------

    @property
    def running(self) -> bool:
        return self._background is not None and self._background.running

    def start(self) -> None:
        """Schedule tick() every interval_seconds on a background thread."""
        if self.running:
            return
        self._background = BackgroundScheduler()
        self._background.add_job(
            self._run_tick,
            "interval",
            seconds=self.interval_seconds,
            id=_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._background.start()
        logger.info("aging_monitor_started", extra={
            "interval_seconds": self.interval_seconds,
        })

    def shutdown(self, wait: bool = True) -> None:
        """Stop scheduling ticks. A tick already running finishes if wait is True."""
        if self._background is None:
            return
        if self._background.running:
            self._background.shutdown(wait=wait)
        self._background = None
        logger.info("aging_monitor_stopped")
