"""
Entitlement cascade applied when an account is terminated for non-payment.

For every workspace where the terminated account holds elevated privilege:
- another elevated holder is still paying: the failing holder is demoted
- nobody else is: the workspace goes read-only for a fixed window

Each workspace is decided in its own transaction with the workspace row
locked, so concurrent cascades on a shared workspace serialize and the
decision always sees the other holders' committed state.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.scoped import transaction
from packages.audit.models.domain.audit_event import AuditEventType
from packages.audit.services.audit_service import AuditService
from packages.billing.models.domain.billing_account import BillingAccountUpdateModel
from packages.billing.models.domain.enums import CascadeActionType
from packages.billing.models.domain.sweep import CascadeAction
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.services.due_date_resolver import classify_account
from packages.workspaces.models.domain.enums import PrivilegeLevel
from packages.workspaces.repositories.membership_repository import (
    MembershipRepository,
)
from packages.workspaces.repositories.workspace_repository import WorkspaceRepository

logger = get_logger(__name__)


class CascadeService:
    def __init__(self):
        self.account_repo = BillingAccountRepository()
        self.workspace_repo = WorkspaceRepository()
        self.membership_repo = MembershipRepository()
        self.audit_service = AuditService()

    @trace_span
    async def enforce(
        self, account_id: int, now: Optional[datetime] = None
    ) -> List[CascadeAction]:
        """Apply the cascade to every workspace the account holds elevated."""
        now = now or utcnow()
        workspace_ids = await self.membership_repo.list_elevated_workspace_ids(
            account_id
        )

        actions = []
        failed = 0
        for workspace_id in workspace_ids:
            try:
                action = await self._enforce_workspace(workspace_id, account_id, now)
            except Exception as e:
                failed += 1
                logger.error(
                    f"Cascade failed for workspace {workspace_id}: {e}",
                    extra={"workspace_id": workspace_id, "account_id": account_id},
                    exc_info=True,
                )
                continue
            if action:
                actions.append(action)

        if not failed:
            await self.account_repo.update(
                account_id, BillingAccountUpdateModel(cascade_pending=False)
            )

        logger.info(
            f"Cascade for account {account_id} applied {len(actions)} action(s)",
            extra={
                "account_id": account_id,
                "workspaces": len(workspace_ids),
                "failed": failed,
                "actions": [a.action.value for a in actions],
            },
        )
        return actions

    async def _enforce_workspace(
        self, workspace_id: int, account_id: int, now: datetime
    ) -> Optional[CascadeAction]:
        async with transaction():
            workspace = await self.workspace_repo.get_for_update(workspace_id)
            if not workspace:
                return None

            holders = await self.membership_repo.list_elevated_holders(workspace_id)
            failing = next((m for m in holders if m.account_id == account_id), None)
            if failing is None:
                # Already handled by an earlier run
                return None

            other_ids = [m.account_id for m in holders if m.account_id != account_id]
            others = await self.account_repo.get_by_ids(other_ids)
            paying_others = [
                a for a in others if classify_account(a, now).is_paying()
            ]

            if not paying_others:
                if workspace.is_restricted(now):
                    return None
                until = now + timedelta(days=settings.billing_restricted_mode_days)
                await self.workspace_repo.set_restricted(workspace_id, until)
                message = (
                    "Workspace set to read-only due to payment failure. "
                    f"Expires {until:%Y-%m-%d}."
                )
                await self.audit_service.record_event(
                    AuditEventType.WORKSPACE_RESTRICTED,
                    message,
                    workspace_id=workspace_id,
                    account_id=account_id,
                )
                return CascadeAction(
                    workspace_id=workspace_id,
                    action=CascadeActionType.WORKSPACE_RESTRICTED,
                    restricted_until=until,
                    message=message,
                )

            await self.membership_repo.demote(failing.id)
            message = (
                f'Role changed from "{PrivilegeLevel.ELEVATED.value}" to '
                f'"{PrivilegeLevel.STANDARD.value}" due to payment failure.'
            )
            await self.audit_service.record_event(
                AuditEventType.MEMBER_ROLE_CHANGED,
                message,
                workspace_id=workspace_id,
                account_id=account_id,
                membership_id=failing.id,
            )
            return CascadeAction(
                workspace_id=workspace_id,
                action=CascadeActionType.ROLE_DEMOTED,
                membership_id=failing.id,
                message=message,
            )
