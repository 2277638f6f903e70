"""Best-effort patient notifications.

Notifications are fire-and-forget: the dispatcher hands each
(patient, new_level) event to a bounded worker pool and logs, then drops,
any delivery failure. Queue state is never rolled back because a
notification could not be sent.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol

import httpx

from services.triage.src.triage.core.redaction import redact_patient
from services.triage.src.triage.schemas.enums import NotificationEvent
from services.triage.src.triage.schemas.patient import Patient

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        patient: Patient,
        new_level: int,
        event: NotificationEvent = NotificationEvent.ESCALATION,
    ) -> None:
        ...


class LoggingNotifier:
    """Writes each notification to the log. Used when no webhook is configured."""

    def notify(
        self,
        patient: Patient,
        new_level: int,
        event: NotificationEvent = NotificationEvent.ESCALATION,
    ) -> None:
        logger.info("patient_notified", extra={
            "event": event.value,
            "patient_id": patient.id,
            "triage_level": new_level,
            "patient": redact_patient(patient),
        })


class WebhookNotifier:
    """POSTs notification events to an HTTP endpoint (e.g. an email gateway)."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def build_payload(
        self, patient: Patient, new_level: int, event: NotificationEvent
    ) -> dict:
        return {
            "event": event.value,
            "patient_id": patient.id,
            "triage_level": new_level,
            "name": patient.name,
            "email": patient.email,
            "language": patient.language,
            "preferred_mode": patient.preferred_mode,
        }

    def notify(
        self,
        patient: Patient,
        new_level: int,
        event: NotificationEvent = NotificationEvent.ESCALATION,
    ) -> None:
        resp = httpx.post(
            self.url,
            json=self.build_payload(patient, new_level, event),
            timeout=self.timeout,
        )
        resp.raise_for_status()


class NotificationDispatcher:
    """Delivers notifications on a bounded thread pool."""

    def __init__(self, notifier: Notifier, max_workers: int = 4):
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="triage-notify"
        )

    def submit(
        self,
        patient: Patient,
        new_level: int,
        event: NotificationEvent = NotificationEvent.ESCALATION,
    ) -> Future | None:
        """Queue a notification. Returns None if the pool is shut down."""
        # Copy so the worker never reads a record the scheduler is mutating
        snapshot = patient.model_copy()
        try:
            return self._executor.submit(self._deliver, snapshot, new_level, event)
        except RuntimeError:
            logger.warning("notification_dropped", extra={
                "patient_id": patient.id, "event": event.value,
                "error": "dispatcher shut down",
            })
            return None

    def _deliver(self, patient: Patient, new_level: int, event: NotificationEvent) -> bool:
        try:
            self.notifier.notify(patient, new_level, event)
        except Exception as exc:
            logger.error("notification_failed", extra={
                "patient_id": patient.id, "event": event.value,
                "triage_level": new_level, "error": str(exc),
            })
            return False
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def build_notifier(webhook_url: str = "", timeout: float = 5.0) -> Notifier:
    """Webhook delivery when a URL is configured, log-only otherwise."""
    if webhook_url:
        return WebhookNotifier(webhook_url, timeout=timeout)
    return LoggingNotifier()
