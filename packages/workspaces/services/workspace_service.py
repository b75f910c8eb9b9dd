from datetime import datetime
from typing import List, Optional

from common.core.clock import utcnow
from common.core.exceptions import NotFoundError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.workspaces.exceptions import WorkspaceRestrictedError
from packages.workspaces.models.domain.enums import PrivilegeLevel
from packages.workspaces.models.domain.membership import (
    Membership,
    MembershipCreateModel,
)
from packages.workspaces.models.domain.workspace import (
    Workspace,
    WorkspaceCreateModel,
)
from packages.workspaces.repositories.membership_repository import (
    MembershipRepository,
)
from packages.workspaces.repositories.workspace_repository import WorkspaceRepository

logger = get_logger(__name__)


class WorkspaceService:
    """Workspace and membership operations the billing engine depends on."""

    def __init__(self):
        self.workspace_repo = WorkspaceRepository()
        self.membership_repo = MembershipRepository()

    @trace_span
    async def create_workspace(
        self, workspace_data: WorkspaceCreateModel, owner_account_id: int
    ) -> Workspace:
        """Create a workspace with its creator as the first elevated holder."""
        workspace = await self.workspace_repo.create(workspace_data)
        await self.membership_repo.create(
            MembershipCreateModel(
                workspace_id=workspace.id,
                account_id=owner_account_id,
                privilege=PrivilegeLevel.ELEVATED,
            )
        )
        logger.info(
            f"Created workspace {workspace.id} owned by account {owner_account_id}"
        )
        return workspace

    @trace_span
    async def add_member(
        self,
        workspace_id: int,
        account_id: int,
        privilege: PrivilegeLevel = PrivilegeLevel.STANDARD,
    ) -> Membership:
        await self.ensure_writable(workspace_id)
        return await self.membership_repo.create(
            MembershipCreateModel(
                workspace_id=workspace_id, account_id=account_id, privilege=privilege
            )
        )

    @trace_span
    async def get_workspace(self, workspace_id: int) -> Optional[Workspace]:
        return await self.workspace_repo.get(workspace_id)

    @trace_span
    async def list_elevated_holders(self, workspace_id: int) -> List[Membership]:
        return await self.membership_repo.list_elevated_holders(workspace_id)

    @trace_span
    async def ensure_writable(
        self, workspace_id: int, now: Optional[datetime] = None
    ) -> Workspace:
        """
        Gate for every mutating workspace operation.

        Raises WorkspaceRestrictedError while restricted mode is active; reads
        never call this.
        """
        now = now or utcnow()
        workspace = await self.workspace_repo.get(workspace_id)
        if not workspace:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        if workspace.is_restricted(now):
            raise WorkspaceRestrictedError(workspace_id, workspace.restricted_until)
        return workspace
