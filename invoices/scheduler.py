"""
In-process polling loop for recurring invoices.

One cycle runs immediately on ``start()`` and then once per interval on a
daemon thread. A cycle that is still running when the next one is due causes
that tick to be skipped.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Dict, Optional

from django.conf import settings
from django.db import close_old_connections

from invoicecycle.logging_filters import cycle_context

logger = logging.getLogger(__name__)


def configured_interval_seconds(fast: Optional[bool] = None) -> int:
    if fast is None:
        fast = getattr(settings, "RECURRING_TEST_MODE", False)
    if fast:
        return getattr(settings, "RECURRING_TEST_INTERVAL_SECONDS", 10)
    return int(getattr(settings, "RECURRING_SCHEDULER_INTERVAL_MINUTES", 60)) * 60


def _process_due_invoices() -> Dict[str, int]:
    from invoices.services.recurring_service import RecurringInvoiceGenerator
    return RecurringInvoiceGenerator.process_due_invoices()


class RecurringInvoiceScheduler:

    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        fast: Optional[bool] = None,
        process: Optional[Callable[[], Dict[str, int]]] = None,
    ):
        self.interval_seconds = interval_seconds or configured_interval_seconds(fast)
        self._process = process or _process_due_invoices
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.cycles_run = 0
        self.cycles_skipped = 0
        self.last_results: Optional[Dict[str, int]] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_cycle(self) -> Optional[Dict[str, int]]:
        """Run one cycle. Returns None if a cycle was already in progress or failed."""
        if not self._cycle_lock.acquire(blocking=False):
            self.cycles_skipped += 1
            logger.warning("Recurring cycle still in progress, skipping this tick")
            return None

        cycle_id = uuid.uuid4().hex[:8]
        try:
            with cycle_context(cycle_id):
                close_old_connections()
                try:
                    results = self._process()
                except Exception:
                    logger.exception("Recurring invoice cycle failed")
                    return None
                finally:
                    close_old_connections()
                self.cycles_run += 1
                self.last_results = results
                return results
        finally:
            self._cycle_lock.release()

    def _loop(self, stop_event: threading.Event) -> None:
        self.run_cycle()
        while not stop_event.wait(self.interval_seconds):
            self.run_cycle()

    def start(self) -> None:
        if self.is_running and not self._stop_event.is_set():
            logger.info("Recurring invoice scheduler already running")
            return
        # A loop left over from a timed-out stop() exits on its own, already set, event
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(self._stop_event,),
            name="recurring-invoice-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Recurring invoice scheduler started (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Recurring invoice scheduler still finishing a cycle after stop()")
                return
        self._thread = None
        logger.info("Recurring invoice scheduler stopped")

    def run_forever(self) -> None:
        """Run cycles on the calling thread until ``stop()`` is called."""
        self._stop_event = threading.Event()
        self._loop(self._stop_event)


_scheduler: Optional[RecurringInvoiceScheduler] = None
_scheduler_lock = threading.Lock()


def start_scheduler(**kwargs) -> RecurringInvoiceScheduler:
    """Start the process-wide scheduler once."""
    global _scheduler
    with _scheduler_lock:
        if _scheduler is None:
            _scheduler = RecurringInvoiceScheduler(**kwargs)
        _scheduler.start()
        return _scheduler
