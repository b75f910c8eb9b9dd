"""
One-shot worker for the nightly billing sweep, run by a scheduler (cron job).
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from common.core.otel_axiom_exporter import get_logger
from packages.billing.models.domain.sweep import NightlySweepSummary
from packages.billing.services.billing_sweep_service import BillingSweepService

logger = get_logger(__name__)


class BillingSweepWorker:
    """Runs one nightly sweep and exits."""

    def __init__(self, as_of: Optional[datetime] = None):
        self.worker_id = f"billing_sweep_worker_{uuid4()}"
        self.as_of = as_of
        self.running = False
        self.sweep_service = BillingSweepService()
        self.lock_provider = self.sweep_service.lock_provider
        self.last_summary: Optional[NightlySweepSummary] = None

    async def start(self):
        if self.running:
            logger.warning(f"Worker {self.worker_id} is already running")
            return

        self.running = True
        logger.info(f"Starting worker {self.worker_id}")

        try:
            await self.lock_provider.connect()
            self.last_summary = await self.sweep_service.run_nightly_sweep(self.as_of)
        except Exception as e:
            logger.error(f"Error in worker {self.worker_id}: {e}")
            raise
        finally:
            self.running = False

        if self.last_summary.skipped:
            logger.info("Sweep skipped: another run holds the lock")
        else:
            collection = self.last_summary.collection
            logger.info(
                f"Sweep finished: {collection.succeeded} charged, {collection.failed} failed, "
                f"{self.last_summary.reminders.sent} reminders sent"
            )

    async def stop(self):
        """Stop the worker and release connections."""
        self.running = False
        try:
            await self.lock_provider.disconnect()
        except Exception as e:
            logger.error(f"Error cleaning up worker {self.worker_id}: {e}")
        logger.info(f"Stopping worker {self.worker_id}")
