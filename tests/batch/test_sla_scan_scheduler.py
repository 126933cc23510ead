"""
Tests for approval_batch.scheduler -- periodic SLA scanning.

Validates SlaScanScheduler: tick() counts, failure isolation and the
start/stop lifecycle.
"""

import threading

import pytest

from approval_batch.scheduler import SlaScanScheduler


class FakeEngine:
    """Stands in for ApprovalEngine; only scan_sla() is used."""

    def __init__(self, breaches=None, error: Exception | None = None):
        self.breaches = breaches or []
        self.error = error
        self.calls = 0
        self.called = threading.Event()

    def scan_sla(self):
        self.calls += 1
        self.called.set()
        if self.error is not None:
            raise self.error
        return list(self.breaches)


@pytest.fixture
def scheduler():
    return SlaScanScheduler(FakeEngine(), interval_seconds=0.05)


# =============================================================================
# tick()
# =============================================================================


class TestTick:
    def test_tick_returns_breach_count(self):
        scheduler = SlaScanScheduler(FakeEngine(breaches=["a", "b"]))
        assert scheduler.tick() == 2

    def test_tick_no_breaches(self, scheduler):
        assert scheduler.tick() == 0

    def test_failing_scan_returns_zero_and_logs(self, captured_logs):
        scheduler = SlaScanScheduler(FakeEngine(error=RuntimeError("db down")))
        assert scheduler.tick() == 0
        (record,) = [r for r in captured_logs() if r["message"] == "sla_scan_tick_failed"]
        assert record["exc_type"] == "RuntimeError"

    def test_tick_against_real_engine(self, recording_engine, people, clock):
        draft = recording_engine.create_draft(
            people.requester, people.department_id, "100", "Laptop",
        )
        recording_engine.submit(draft.request_id)
        scheduler = SlaScanScheduler(recording_engine)

        assert scheduler.tick() == 0
        clock.advance(minutes=241)
        assert scheduler.tick() == 1

    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_must_be_positive(self, interval):
        with pytest.raises(ValueError):
            SlaScanScheduler(FakeEngine(), interval_seconds=interval)


# =============================================================================
# start() / stop() lifecycle
# =============================================================================


class TestLifecycle:
    def test_start_runs_scans_in_background(self, scheduler):
        scheduler.start()
        assert scheduler._engine.called.wait(timeout=2.0)
        assert scheduler.is_running
        scheduler.stop(timeout=2.0)

    def test_stop_terminates_thread(self, scheduler):
        scheduler.start()
        scheduler.stop(timeout=2.0)
        assert not scheduler.is_running

    def test_double_start_is_noop(self, scheduler):
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()
        assert scheduler._thread is thread
        scheduler.stop(timeout=2.0)

    def test_stop_without_start_is_safe(self, scheduler):
        scheduler.stop(timeout=1.0)
        assert not scheduler.is_running

    def test_loop_survives_failing_scans(self):
        engine = FakeEngine(error=RuntimeError("boom"))
        scheduler = SlaScanScheduler(engine, interval_seconds=0.01)
        scheduler.start()
        try:
            engine.called.wait(timeout=2.0)
            engine.called.clear()
            assert engine.called.wait(timeout=2.0)
            assert scheduler.is_running
        finally:
            scheduler.stop(timeout=2.0)
