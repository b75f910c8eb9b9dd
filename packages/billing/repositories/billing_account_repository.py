"""
Repository for billing accounts.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, or_, and_

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.billing_account import BillingAccountEntity
from packages.billing.models.domain.billing_account import BillingAccount


class BillingAccountRepository(BaseRepository[BillingAccountEntity, BillingAccount]):
    """Repository for billing accounts."""

    def __init__(self):
        super().__init__(BillingAccountEntity, BillingAccount)

    @trace_span
    async def get_by_email(self, email: str) -> Optional[BillingAccount]:
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingAccountEntity).where(BillingAccountEntity.email == email)
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def list_renewals_due(self, now: datetime) -> List[BillingAccount]:
        """
        Subscribed, non-permanent accounts whose renewal date has arrived.

        Coarse filter only; the due-date resolver makes the final call.
        """
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingAccountEntity)
                .where(
                    BillingAccountEntity.is_subscribed == True,  # noqa
                    BillingAccountEntity.is_permanent == False,  # noqa
                    BillingAccountEntity.renewal_date.is_not(None),
                    BillingAccountEntity.renewal_date <= now,
                )
                .order_by(BillingAccountEntity.renewal_date, BillingAccountEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_reminder_candidates(self) -> List[BillingAccount]:
        """Subscribed accounts plus never-terminated unsubscribed (trial) accounts."""
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingAccountEntity)
                .where(
                    BillingAccountEntity.is_permanent == False,  # noqa
                    or_(
                        BillingAccountEntity.is_subscribed == True,  # noqa
                        and_(
                            BillingAccountEntity.terminated_at.is_(None),
                            BillingAccountEntity.subscription_start_date.is_(None),
                        ),
                    ),
                )
                .order_by(BillingAccountEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_cascade_pending(self) -> List[BillingAccount]:
        """Terminated accounts whose workspace cascade has not fully applied."""
        async with self._get_session() as session:
            result = await session.execute(
                select(BillingAccountEntity)
                .where(BillingAccountEntity.cascade_pending == True)  # noqa
                .order_by(BillingAccountEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())
