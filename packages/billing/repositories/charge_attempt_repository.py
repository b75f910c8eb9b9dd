"""
Repository for the billing ledger.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.repositories.base import BaseRepository
from packages.billing.exceptions import LedgerConflict
from packages.billing.models.database.charge_attempt import ChargeAttemptEntity
from packages.billing.models.domain.charge_attempt import (
    ChargeAttempt,
    ChargeAttemptCreateModel,
)
from packages.billing.models.domain.enums import ChargeStatus

logger = get_logger(__name__)


class ChargeAttemptRepository(BaseRepository[ChargeAttemptEntity, ChargeAttempt]):
    """Append-only ledger access. Rows are never deleted."""

    def __init__(self):
        super().__init__(ChargeAttemptEntity, ChargeAttempt)

    @trace_span
    async def insert_pending(self, create_model: ChargeAttemptCreateModel) -> ChargeAttempt:
        """
        Insert a pending attempt.

        Raises LedgerConflict when the live-period unique index rejects the row,
        i.e. another pending or succeeded attempt exists for the same period.
        """
        entity = ChargeAttemptEntity(**create_model.model_dump(exclude_none=True))
        async with self._get_session() as session:
            try:
                async with session.begin_nested():
                    session.add(entity)
                    await session.flush()
            except IntegrityError as e:
                logger.warning(
                    f"Live ledger entry already exists for account {create_model.account_id}",
                    extra={
                        "account_id": create_model.account_id,
                        "period_start": create_model.period_start.isoformat(),
                    },
                )
                raise LedgerConflict(
                    "A charge for this billing period is already pending or completed."
                ) from e
            await session.refresh(entity)
            return self._entity_to_domain(entity)

    @trace_span
    async def resolve(
        self,
        attempt_id: int,
        status: ChargeStatus,
        resolved_at: datetime,
        processor_reference: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """
        Move a pending attempt to a terminal status.

        The `status == pending` guard makes the transition happen at most once;
        returns False if the row had already been resolved.
        """
        values = {"status": status.value, "resolved_at": resolved_at}
        if processor_reference is not None:
            values["processor_reference"] = processor_reference
        if failure_reason is not None:
            values["failure_reason"] = failure_reason[:500]

        async with self._get_session() as session:
            result = await session.execute(
                update(ChargeAttemptEntity)
                .where(
                    ChargeAttemptEntity.id == attempt_id,
                    ChargeAttemptEntity.status == ChargeStatus.PENDING.value,
                )
                .values(**values)
            )
            await session.flush()
            return result.rowcount > 0

    @trace_span
    async def mark_failure_counted(self, attempt_id: int, reason: str) -> None:
        """Note on a still-pending attempt that its transient error was counted."""
        async with self._get_session() as session:
            await session.execute(
                update(ChargeAttemptEntity)
                .where(ChargeAttemptEntity.id == attempt_id)
                .values(failure_counted=True, failure_reason=reason[:500])
            )
            await session.flush()

    @trace_span
    async def get_pending_for_account(self, account_id: int) -> Optional[ChargeAttempt]:
        """The oldest attempt of this account whose outcome is still unknown."""
        async with self._get_session() as session:
            result = await session.execute(
                select(ChargeAttemptEntity)
                .where(
                    ChargeAttemptEntity.account_id == account_id,
                    ChargeAttemptEntity.status == ChargeStatus.PENDING.value,
                )
                .order_by(ChargeAttemptEntity.id)
                .limit(1)
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def list_pending_created_before(self, cutoff: datetime) -> List[ChargeAttempt]:
        async with self._get_session() as session:
            result = await session.execute(
                select(ChargeAttemptEntity)
                .where(
                    ChargeAttemptEntity.status == ChargeStatus.PENDING.value,
                    ChargeAttemptEntity.created_at <= cutoff,
                )
                .order_by(ChargeAttemptEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_for_account(
        self, account_id: int, limit: int = 12
    ) -> List[ChargeAttempt]:
        """Ledger rows for an account, newest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(ChargeAttemptEntity)
                .where(ChargeAttemptEntity.account_id == account_id)
                .order_by(
                    ChargeAttemptEntity.created_at.desc(), ChargeAttemptEntity.id.desc()
                )
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())
