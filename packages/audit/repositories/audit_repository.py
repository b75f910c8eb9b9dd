from typing import List
from sqlalchemy import select

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.audit.models.database.audit_event import AuditEventEntity
from packages.audit.models.domain.audit_event import AuditEvent


class AuditRepository(BaseRepository[AuditEventEntity, AuditEvent]):
    def __init__(self):
        super().__init__(AuditEventEntity, AuditEvent)

    @trace_span
    async def list_for_workspace(self, workspace_id: int) -> List[AuditEvent]:
        async with self._get_session() as session:
            result = await session.execute(
                select(AuditEventEntity)
                .where(AuditEventEntity.workspace_id == workspace_id)
                .order_by(AuditEventEntity.created_at, AuditEventEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())
