"""Tests for wait-time aging and escalation."""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from services.triage.src.triage.core.aging import DEFAULT_THRESHOLDS, AgingMonitor
from services.triage.src.triage.core.errors import NotFoundError
from services.triage.src.triage.schemas.enums import NotificationEvent


@pytest.fixture
def dispatcher():
    return MagicMock()


@pytest.fixture
def monitor(scheduler, dispatcher):
    return AgingMonitor(scheduler, dispatcher)


class TestThresholds:
    def test_default_table(self):
        assert DEFAULT_THRESHOLDS == {2: 3600, 3: 5400, 4: 7200, 5: 9000}

    def test_level_one_never_has_threshold(self, scheduler):
        monitor = AgingMonitor(scheduler, thresholds={1: 10, 2: 20})
        assert monitor.threshold_for(1) is None
        assert monitor.threshold_for(2) == 20


class TestTick:
    @pytest.mark.parametrize("level, threshold", sorted(DEFAULT_THRESHOLDS.items()))
    def test_escalates_one_level_at_threshold(
        self, scheduler, monitor, make_patient, clock, level, threshold
    ):
        patient = make_patient(level)
        scheduler.enqueue(patient)
        clock.advance(threshold)

        escalations = monitor.tick()

        assert len(escalations) == 1
        assert escalations[0].from_level == level
        assert escalations[0].to_level == level - 1
        assert scheduler.position_of(patient.id) == (level - 1, 1)

    def test_below_threshold_not_escalated(self, scheduler, monitor, make_patient, clock):
        scheduler.enqueue(make_patient(3))
        clock.advance(5399)
        assert monitor.tick() == []
        assert scheduler.sizes()[3] == 1

    def test_resets_wait_window(self, scheduler, monitor, make_patient, clock):
        patient = make_patient(2)
        scheduler.enqueue(patient)
        clock.advance(4000)
        monitor.tick()
        assert patient.internal_time == clock.now

    def test_at_most_one_level_per_tick(self, scheduler, monitor, make_patient, clock):
        patient = make_patient(5)
        scheduler.enqueue(patient)
        # Long enough to breach every threshold on the way up
        clock.advance(100_000)

        monitor.tick()
        assert patient.triage_level == 4

        monitor.tick()
        assert patient.triage_level == 4

        clock.advance(7200)
        monitor.tick()
        assert patient.triage_level == 3

    def test_level_one_never_aged(self, scheduler, monitor, make_patient, clock, dispatcher):
        patient = make_patient(1)
        scheduler.enqueue(patient)
        started = patient.internal_time

        for _ in range(10):
            clock.advance(50_000)
            assert monitor.tick() == []

        assert patient.triage_level == 1
        assert patient.internal_time == started
        dispatcher.submit.assert_not_called()

    def test_escalated_patient_joins_tail(self, scheduler, monitor, make_patient, clock):
        stale = make_patient(3)
        scheduler.enqueue(stale)
        clock.advance(5400)
        fresh = make_patient(2)
        scheduler.enqueue(fresh)

        monitor.tick()

        assert [p.id for p in scheduler.list_level(2)] == [fresh.id, stale.id]

    def test_several_levels_escalate_in_one_tick(self, scheduler, monitor, make_patient, clock):
        waiting = make_patient(2)
        scheduler.enqueue(waiting)
        clock.advance(4000)
        stale = make_patient(3)
        scheduler.enqueue(stale)
        clock.advance(5400)

        monitor.tick()

        # Both breach their thresholds and each moves up exactly one level
        assert [p.id for p in scheduler.list_level(1)] == [waiting.id]
        assert [p.id for p in scheduler.list_level(2)] == [stale.id]

    def test_only_stale_patients_move(self, scheduler, monitor, make_patient, clock):
        old = make_patient(4)
        scheduler.enqueue(old)
        clock.advance(7000)
        new = make_patient(4)
        scheduler.enqueue(new)
        clock.advance(200)

        escalations = monitor.tick()

        assert [e.patient_id for e in escalations] == [old.id]
        assert new.triage_level == 4

    def test_edited_snapshot_does_not_steer_aging(self, scheduler, monitor, make_patient, clock):
        scheduler.enqueue(make_patient(3, patient_id=1))
        snapshot = scheduler.list_all()[0]
        snapshot.triage_level = 1
        snapshot.internal_time = clock.now
        clock.advance(100_000)

        escalations = monitor.tick()

        assert [(e.from_level, e.to_level) for e in escalations] == [(3, 2)]
        assert scheduler.position_of(1) == (2, 1)

    def test_closed_scheduler_skips_tick(self, scheduler, monitor, make_patient, clock, caplog):
        scheduler.enqueue(make_patient(5))
        clock.advance(9000)
        scheduler.close()

        with caplog.at_level(logging.INFO):
            assert monitor.tick() == []

        assert scheduler.sizes()[5] == 1
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert "aging_tick_skipped" in [r.getMessage() for r in caplog.records]


class TestNotifications:
    def test_escalation_is_notified(self, scheduler, monitor, make_patient, clock, dispatcher):
        patient = make_patient(3)
        scheduler.enqueue(patient)
        clock.advance(6000)

        monitor.tick()

        dispatcher.submit.assert_called_once()
        notified, level, event = dispatcher.submit.call_args.args
        assert notified.id == patient.id
        assert level == 2
        assert event == NotificationEvent.ESCALATION

    def test_notification_failure_keeps_escalation(self, scheduler, make_patient, clock):
        dispatcher = MagicMock()
        dispatcher.submit.side_effect = [RuntimeError("smtp down"), None]
        monitor = AgingMonitor(scheduler, dispatcher)
        first = make_patient(2)
        second = make_patient(2)
        scheduler.enqueue(first)
        scheduler.enqueue(second)
        clock.advance(3600)

        escalations = monitor.tick()

        assert len(escalations) == 2
        assert first.triage_level == 1
        assert second.triage_level == 1
        assert dispatcher.submit.call_count == 2

    def test_notification_sent_after_lock_released(self, scheduler, make_patient, clock):
        seen_lock_free = []

        def lock_is_free():
            # The lock is re-entrant, so try it from another thread
            result = []

            def try_lock():
                acquired = scheduler._lock.acquire(blocking=False)
                result.append(acquired)
                if acquired:
                    scheduler._lock.release()

            t = threading.Thread(target=try_lock)
            t.start()
            t.join()
            return result[0]

        class LockCheckingDispatcher:
            def submit(self, patient, level, event):
                seen_lock_free.append(lock_is_free())

        monitor = AgingMonitor(scheduler, LockCheckingDispatcher())
        scheduler.enqueue(make_patient(5))
        clock.advance(9000)

        monitor.tick()

        assert seen_lock_free == [True]

    def test_works_without_dispatcher(self, scheduler, make_patient, clock):
        monitor = AgingMonitor(scheduler)
        scheduler.enqueue(make_patient(2))
        clock.advance(3600)
        assert len(monitor.tick()) == 1


class TestFailureIsolation:
    def test_failed_move_does_not_block_others(self, scheduler, make_patient, clock):
        monitor = AgingMonitor(scheduler)
        a = make_patient(3)
        b = make_patient(3)
        scheduler.enqueue(a)
        scheduler.enqueue(b)
        clock.advance(5400)

        real_move = scheduler.move_patient

        def flaky_move(patient_id, target):
            if patient_id == a.id:
                raise NotFoundError("raced with call_next")
            return real_move(patient_id, target)

        scheduler.move_patient = flaky_move

        escalations = monitor.tick()

        assert [e.patient_id for e in escalations] == [b.id]
        assert a.triage_level == 3

    def test_unexpected_error_is_logged_and_skipped(self, scheduler, make_patient, clock):
        monitor = AgingMonitor(scheduler)
        a = make_patient(4)
        b = make_patient(4)
        scheduler.enqueue(a)
        scheduler.enqueue(b)
        clock.advance(7200)

        real_move = scheduler.move_patient
        calls = []

        def broken_move(patient_id, target):
            calls.append(patient_id)
            if len(calls) == 1:
                raise ValueError("boom")
            return real_move(patient_id, target)

        scheduler.move_patient = broken_move

        escalations = monitor.tick()
        assert len(escalations) == 1
        assert len(calls) == 2

    def test_background_wrapper_swallows_errors(self, scheduler):
        monitor = AgingMonitor(scheduler)
        monitor.tick = MagicMock(side_effect=RuntimeError("boom"))
        monitor._run_tick()
        monitor.tick.assert_called_once()


class TestBackgroundJob:
    def test_start_and_shutdown(self, scheduler):
        monitor = AgingMonitor(scheduler, interval_seconds=3600)
        monitor.start()
        try:
            assert monitor.running
            job = monitor._background.get_job("triage_aging_tick")
            assert job is not None
        finally:
            monitor.shutdown()
        assert not monitor.running

    def test_start_is_idempotent(self, scheduler):
        monitor = AgingMonitor(scheduler, interval_seconds=3600)
        monitor.start()
        background = monitor._background
        monitor.start()
        try:
            assert monitor._background is background
        finally:
            monitor.shutdown()

    def test_shutdown_without_start(self, scheduler):
        AgingMonitor(scheduler).shutdown()
