"""
Billing ledger: append-only record of charge attempts.

Each attempt is written `pending` before the processor is called and moved
to `succeeded` or `failed` exactly once afterwards. A partial unique index
keeps at most one live (pending or succeeded) attempt per account and period.
"""

from datetime import datetime
from typing import List, Optional

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.exceptions import InvalidLedgerTransition, ValidationError
from packages.billing.models.domain.charge_attempt import (
    ChargeAttempt,
    ChargeAttemptCreateModel,
)
from packages.billing.models.domain.enums import ChargeKind, ChargeStatus
from packages.billing.models.domain.invoice import ChargeQuote
from packages.billing.repositories.charge_attempt_repository import (
    ChargeAttemptRepository,
)

logger = get_logger(__name__)


class LedgerService:
    """Writes and reads ledger entries."""

    def __init__(self):
        self.attempt_repo = ChargeAttemptRepository()

    @trace_span
    async def record_pending(
        self,
        account_id: int,
        quote: ChargeQuote,
        period_start: datetime,
        period_end: datetime,
        kind: ChargeKind,
        now: Optional[datetime] = None,
    ) -> ChargeAttempt:
        """
        Record a pending attempt for one billing period.

        Raises:
            ValidationError: non-positive amount or empty period
            LedgerConflict: a live attempt already exists for this period
        """
        if quote.total <= 0:
            raise ValidationError("Charge amount must be positive")
        if period_end <= period_start:
            raise ValidationError("Billing period end must be after its start")

        attempt = await self.attempt_repo.insert_pending(
            ChargeAttemptCreateModel(
                account_id=account_id,
                kind=kind,
                amount=quote.total,
                currency=quote.currency,
                base_amount=quote.base_amount,
                storage_packs=quote.usage_packs,
                storage_pack_amount=quote.pack_amount,
                description=quote.description,
                period_start=period_start,
                period_end=period_end,
                created_at=now,
            )
        )

        logger.info(
            f"Recorded pending {kind.value} charge {attempt.id} for account {account_id}",
            extra={
                "attempt_id": attempt.id,
                "account_id": account_id,
                "amount": attempt.amount,
                "period_start": period_start.isoformat(),
            },
        )
        return attempt

    @trace_span
    async def mark_succeeded(
        self, attempt_id: int, processor_reference: Optional[str], now: datetime
    ) -> None:
        resolved = await self.attempt_repo.resolve(
            attempt_id,
            ChargeStatus.SUCCEEDED,
            resolved_at=now,
            processor_reference=processor_reference,
        )
        if not resolved:
            raise InvalidLedgerTransition(
                f"Charge attempt {attempt_id} is no longer pending"
            )
        logger.info(
            f"Charge attempt {attempt_id} succeeded",
            extra={"attempt_id": attempt_id, "processor_reference": processor_reference},
        )

    @trace_span
    async def mark_failed(self, attempt_id: int, reason: str, now: datetime) -> None:
        resolved = await self.attempt_repo.resolve(
            attempt_id, ChargeStatus.FAILED, resolved_at=now, failure_reason=reason
        )
        if not resolved:
            raise InvalidLedgerTransition(
                f"Charge attempt {attempt_id} is no longer pending"
            )
        logger.info(
            f"Charge attempt {attempt_id} failed: {reason}",
            extra={"attempt_id": attempt_id, "reason": reason},
        )

    @trace_span
    async def mark_failure_counted(self, attempt_id: int, reason: str) -> None:
        await self.attempt_repo.mark_failure_counted(attempt_id, reason)

    @trace_span
    async def get_attempt(self, attempt_id: int) -> Optional[ChargeAttempt]:
        return await self.attempt_repo.get(attempt_id)

    @trace_span
    async def get_pending_attempt(self, account_id: int) -> Optional[ChargeAttempt]:
        return await self.attempt_repo.get_pending_for_account(account_id)

    @trace_span
    async def list_stale_pending(self, cutoff: datetime) -> List[ChargeAttempt]:
        return await self.attempt_repo.list_pending_created_before(cutoff)

    @trace_span
    async def get_history(
        self, account_id: int, limit: Optional[int] = None
    ) -> List[ChargeAttempt]:
        """Newest first; every failed, pending and succeeded attempt."""
        limit = limit or settings.billing_history_default_limit
        return await self.attempt_repo.list_for_account(account_id, limit=limit)
