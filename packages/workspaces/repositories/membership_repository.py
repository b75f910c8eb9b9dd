from typing import List, Optional
from sqlalchemy import select, update

from packages.workspaces.models.database.membership import WorkspaceMembershipEntity
from packages.workspaces.models.database.workspace import WorkspaceEntity
from packages.workspaces.models.domain.enums import PrivilegeLevel
from packages.workspaces.models.domain.membership import Membership
from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span


class MembershipRepository(BaseRepository[WorkspaceMembershipEntity, Membership]):
    def __init__(self):
        super().__init__(WorkspaceMembershipEntity, Membership)

    @trace_span
    async def list_elevated_holders(self, workspace_id: int) -> List[Membership]:
        """Elevated memberships of a live workspace, oldest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(WorkspaceMembershipEntity)
                .where(
                    WorkspaceMembershipEntity.workspace_id == workspace_id,
                    WorkspaceMembershipEntity.privilege
                    == PrivilegeLevel.ELEVATED.value,
                )
                .order_by(WorkspaceMembershipEntity.id)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def list_elevated_workspace_ids(self, account_id: int) -> List[int]:
        """Live workspaces where the account currently holds elevated privilege."""
        async with self._get_session() as session:
            result = await session.execute(
                select(WorkspaceMembershipEntity.workspace_id)
                .join(
                    WorkspaceEntity,
                    WorkspaceEntity.id == WorkspaceMembershipEntity.workspace_id,
                )
                .where(
                    WorkspaceMembershipEntity.account_id == account_id,
                    WorkspaceMembershipEntity.privilege
                    == PrivilegeLevel.ELEVATED.value,
                    WorkspaceEntity.deleted == False,  # noqa
                )
                .order_by(WorkspaceMembershipEntity.workspace_id)
            )
            return list(result.scalars().all())

    @trace_span
    async def get_by_workspace_and_account(
        self, workspace_id: int, account_id: int
    ) -> Optional[Membership]:
        async with self._get_session() as session:
            result = await session.execute(
                select(WorkspaceMembershipEntity).where(
                    WorkspaceMembershipEntity.workspace_id == workspace_id,
                    WorkspaceMembershipEntity.account_id == account_id,
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def demote(self, membership_id: int) -> bool:
        """Drop an elevated membership to standard. False if it was not elevated."""
        async with self._get_session() as session:
            result = await session.execute(
                update(WorkspaceMembershipEntity)
                .where(
                    WorkspaceMembershipEntity.id == membership_id,
                    WorkspaceMembershipEntity.privilege
                    == PrivilegeLevel.ELEVATED.value,
                )
                .values(privilege=PrivilegeLevel.STANDARD.value)
            )
            await session.flush()
            return result.rowcount > 0
