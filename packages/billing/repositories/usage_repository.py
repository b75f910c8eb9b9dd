"""
Repository for metered storage usage.
"""

from sqlalchemy import select, func

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.billing.models.database.metered_object import MeteredObjectEntity
from packages.billing.models.domain.usage import MeteredObject, MeteredObjectCreateModel
from packages.workspaces.models.database.membership import WorkspaceMembershipEntity
from packages.workspaces.models.database.workspace import WorkspaceEntity
from packages.workspaces.models.domain.enums import PrivilegeLevel


class UsageRepository(BaseRepository[MeteredObjectEntity, MeteredObject]):
    """Repository for metered objects."""

    def __init__(self):
        super().__init__(MeteredObjectEntity, MeteredObject)

    @trace_span
    async def sum_metered_bytes(self, account_id: int) -> int:
        """
        Bytes of live objects across every live workspace where the account
        currently holds elevated privilege. Standard memberships never count.
        """
        elevated_workspaces = (
            select(WorkspaceMembershipEntity.workspace_id)
            .join(
                WorkspaceEntity,
                WorkspaceEntity.id == WorkspaceMembershipEntity.workspace_id,
            )
            .where(
                WorkspaceMembershipEntity.account_id == account_id,
                WorkspaceMembershipEntity.privilege == PrivilegeLevel.ELEVATED.value,
                WorkspaceEntity.deleted == False,  # noqa
            )
        )
        async with self._get_session() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(MeteredObjectEntity.size_bytes), 0)).where(
                    MeteredObjectEntity.workspace_id.in_(elevated_workspaces),
                    MeteredObjectEntity.deleted == False,  # noqa
                )
            )
            return int(result.scalar_one() or 0)

    @trace_span
    async def record_object(self, create_model: MeteredObjectCreateModel) -> MeteredObject:
        return await self.create(create_model)
