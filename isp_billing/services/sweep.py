"""Overdue sweep - reminders, overdue transitions and contract suspension"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Dict, Any, Optional, Protocol

from sqlalchemy.orm import Session

from isp_billing.domain.billing import days_remaining
from isp_billing.domain.exceptions import NotificationError
from isp_billing.domain.models import InvoiceState, SweepResult
from isp_billing.infrastructure.database.repositories import InvoiceRepository
from isp_billing.infrastructure.observability.logging import log_sweep_completed
from isp_billing.infrastructure.observability.metrics import (
    sweep_duration_histogram,
    sweep_failure_counter,
    sweep_skipped_counter,
)
from isp_billing.services.invoices import InvoiceService
from isp_billing.services.locks import customer_key, invoice_key, ledger_locks
from isp_billing.utils.date_utils import utcnow


class Notifier(Protocol):
    def send_reminder(self, payload: Dict[str, Any]) -> None: ...


class OverdueSweep:
    """
    One pass over every pending invoice.

    Each invoice is its own unit of work: the overdue transition and the
    contract suspension commit together, and a failure is rolled back and
    counted without stopping the pass.
    """

    def __init__(self, db: Session, notifier: Notifier):
        self.db = db
        self.notifier = notifier
        self.invoices = InvoiceRepository(db)
        self.lifecycle = InvoiceService(db)

    def run(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utcnow()
        result = SweepResult()

        for invoice_id in self.invoices.pending_ids():
            result.scanned += 1
            try:
                self._process(invoice_id, now, result)
            except Exception as e:
                self.db.rollback()
                result.failures += 1
                sweep_failure_counter.inc()
                logging.error(f"Sweep failed for invoice {invoice_id}: {e}", extra={"invoice_id": invoice_id})

        return result

    def _process(self, invoice_id: str, now: datetime, result: SweepResult) -> None:
        invoice = self.invoices.get(invoice_id)
        if not invoice:
            return

        with ledger_locks.hold(customer_key(invoice.customer_id), invoice_key(invoice.id)):
            try:
                self.db.refresh(invoice)
                if invoice.state != InvoiceState.PENDING.value:
                    return

                remaining = days_remaining(invoice.due_date, now)

                if remaining == 1 and not invoice.reminder_sent:
                    if self._remind(invoice):
                        self.invoices.mark_reminder_sent(invoice.id)
                        self.db.commit()
                        result.reminders_sent += 1

                elif remaining <= 0:
                    changed, suspended = self.lifecycle.expire(invoice)
                    self.db.commit()
                    result.marked_overdue += int(changed)
                    result.contracts_suspended += int(suspended)
            except Exception:
                # Roll back while the locks are still held
                self.db.rollback()
                raise

    def _remind(self, invoice) -> bool:
        """Deliver a reminder; delivery failures never block the sweep"""
        try:
            self.notifier.send_reminder(
                {
                    "invoice_id": invoice.id,
                    "customer_id": invoice.customer_id,
                    "email": invoice.customer.email if invoice.customer else None,
                    "period": invoice.period,
                    "amount_usd": invoice.amount,
                    "due_date": invoice.due_date.isoformat(),
                }
            )
        except NotificationError as e:
            logging.warning(f"Reminder not delivered: {e}", extra={"invoice_id": invoice.id})
            return False
        return True


class SweepRunner:
    """Single-flight wrapper: a trigger while a run is in progress is skipped"""

    def __init__(self, session_factory: Callable[[], Session], notifier: Notifier):
        self.session_factory = session_factory
        self.notifier = notifier
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run_once(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        """Run a sweep, or return None when another run holds the lock"""
        if not self._lock.acquire(blocking=False):
            sweep_skipped_counter.inc()
            logging.info("Overdue sweep already running, trigger skipped")
            return None

        try:
            start_time = time.time()
            db = self.session_factory()
            try:
                with sweep_duration_histogram.time():
                    result = OverdueSweep(db, self.notifier).run(now)
            finally:
                db.close()
            log_sweep_completed(result, (time.time() - start_time) * 1000)
            return result
        finally:
            self._lock.release()


class SweepScheduler:
    """Runs the sweep on a fixed interval as an asyncio background task"""

    def __init__(self, runner: SweepRunner, interval_seconds: float):
        self.runner = runner
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                # The sweep uses blocking database calls
                await asyncio.to_thread(self.runner.run_once)
            except Exception as e:
                logging.error(f"Scheduled overdue sweep crashed: {e}")
