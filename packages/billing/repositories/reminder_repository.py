"""
Repository for reminder bookkeeping.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.reminder_record import ReminderRecordEntity
from packages.billing.models.domain.reminder import ReminderRecord


class ReminderRepository(BaseRepository[ReminderRecordEntity, ReminderRecord]):
    def __init__(self):
        super().__init__(ReminderRecordEntity, ReminderRecord)

    @trace_span
    async def get_by_account(self, account_id: int) -> Optional[ReminderRecord]:
        async with self._get_session() as session:
            result = await session.execute(
                select(ReminderRecordEntity).where(
                    ReminderRecordEntity.account_id == account_id
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def record_sent(
        self, account_id: int, sent_at: datetime, offset_days: int
    ) -> ReminderRecord:
        """Insert or overwrite the account's last-reminder row."""
        async with self._get_session() as session:
            result = await session.execute(
                select(ReminderRecordEntity).where(
                    ReminderRecordEntity.account_id == account_id
                )
            )
            entity = result.scalar_one_or_none()
            if entity is None:
                entity = ReminderRecordEntity(account_id=account_id)
                session.add(entity)
            entity.last_sent_at = sent_at
            entity.last_offset_days = offset_days
            await session.flush()
            await session.refresh(entity)
            return self._entity_to_domain(entity)
