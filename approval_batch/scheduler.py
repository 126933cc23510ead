"""
SlaScanScheduler -- In-process polling scheduler for the SLA scan.

Contract:
    Calls ``ApprovalEngine.scan_sla()`` every ``interval_seconds`` on a
    daemon thread.  Each scan dispatches breach notifications; the engine
    deduplicates them, so overlapping or repeated scans are harmless.

Invariants enforced:
    - All timestamps come from the engine's injected Clock.
    - Graceful shutdown: ``stop()`` is honoured between ticks and never
      interrupts a scan in progress.
"""

from __future__ import annotations

import threading

from approval_kernel.logging_config import get_logger
from approval_kernel.services.approval_engine import ApprovalEngine

logger = get_logger("batch.scheduler")


class SlaScanScheduler:
    """Runs the SLA scan periodically.

    Non-goals:
        - NOT a distributed scheduler (no leader election).  Running one
          per process is safe because breach notices are deduplicated in
          the database.
    """

    def __init__(self, engine: ApprovalEngine, interval_seconds: float = 60.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._engine = engine
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> int:
        """Run one scan (public for testing).

        Returns the number of breaches observed, 0 if the scan failed.
        """
        try:
            breaches = self._engine.scan_sla()
        except Exception:
            logger.exception("sla_scan_tick_failed")
            return 0
        return len(breaches)

    def start(self) -> None:
        """Start scanning in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="sla-scan-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current scan to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            # Wait for interval or until stopped
            self._stop_event.wait(timeout=self._interval)
