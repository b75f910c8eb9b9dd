"""
Nightly billing run: reconciliation, unfinished cascades, collection, then
reminders.

Guarded by a distributed lock so overlapping triggers (cron retry, manual
call to the internal endpoint) never run two sweeps side by side. The ledger
index still prevents double charging if the lock is lost mid-run.
"""

from datetime import datetime
from typing import Optional

from common.core.clock import utcnow
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.locking.factory import get_lock_provider
from packages.billing.models.domain.sweep import NightlySweepSummary
from packages.billing.services.collection_service import CollectionService
from packages.billing.services.reminder_service import ReminderService

logger = get_logger(__name__)

SWEEP_LOCK_KEY = "billing:nightly_sweep"
SWEEP_LOCK_TTL_SECONDS = 3600


class BillingSweepService:
    def __init__(self):
        self.collection = CollectionService()
        self.reminders = ReminderService()
        self.lock_provider = get_lock_provider()

    @trace_span
    async def run_nightly_sweep(
        self, now: Optional[datetime] = None
    ) -> NightlySweepSummary:
        now = now or utcnow()
        summary = NightlySweepSummary(started_at=now)

        lock_token = await self.lock_provider.acquire_lock(
            SWEEP_LOCK_KEY, timeout_seconds=SWEEP_LOCK_TTL_SECONDS
        )
        if not lock_token:
            logger.warning("Nightly sweep already running elsewhere, skipping")
            summary.skipped = True
            return summary

        try:
            # Settle stale pending attempts before retrying their accounts
            try:
                summary.reconciliation = await self.collection.reconcile_pending(now)
            except Exception as e:
                logger.error(f"Reconciliation step failed: {e}", exc_info=True)

            try:
                summary.cascades = await self.collection.retry_pending_cascades(now)
            except Exception as e:
                logger.error(f"Cascade retry step failed: {e}", exc_info=True)

            try:
                summary.collection = await self.collection.run_collection_sweep(now)
            except Exception as e:
                logger.error(f"Collection step failed: {e}", exc_info=True)

            try:
                summary.reminders = await self.reminders.run_reminder_sweep(now)
            except Exception as e:
                logger.error(f"Reminder step failed: {e}", exc_info=True)
        finally:
            await self.lock_provider.release_lock(SWEEP_LOCK_KEY, lock_token)

        logger.info(
            "Nightly sweep complete",
            extra={
                "reconciled": summary.reconciliation.checked,
                "cascades_retried": summary.cascades.checked,
                "charged": summary.collection.succeeded,
                "failed": summary.collection.failed,
                "reminders_sent": summary.reminders.sent,
            },
        )
        return summary
