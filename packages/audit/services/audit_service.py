from typing import List, Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.audit.models.domain.audit_event import (
    AuditEvent,
    AuditEventCreateModel,
    AuditEventType,
)
from packages.audit.repositories.audit_repository import AuditRepository

logger = get_logger(__name__)


class AuditService:
    def __init__(self):
        self.audit_repo = AuditRepository()

    @trace_span
    async def record_event(
        self,
        event_type: AuditEventType,
        message: str,
        workspace_id: Optional[int] = None,
        account_id: Optional[int] = None,
        membership_id: Optional[int] = None,
    ) -> AuditEvent:
        event = await self.audit_repo.create(
            AuditEventCreateModel(
                event_type=event_type,
                message=message,
                workspace_id=workspace_id,
                account_id=account_id,
                membership_id=membership_id,
            )
        )
        logger.info(
            f"Audit: {event_type.value} - {message}",
            extra={"workspace_id": workspace_id, "account_id": account_id},
        )
        return event

    @trace_span
    async def list_workspace_events(self, workspace_id: int) -> List[AuditEvent]:
        return await self.audit_repo.list_for_workspace(workspace_id)
