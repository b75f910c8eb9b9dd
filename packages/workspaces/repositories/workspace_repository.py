from datetime import datetime
from typing import Optional
from sqlalchemy import update

from packages.workspaces.models.database.workspace import WorkspaceEntity
from packages.workspaces.models.domain.workspace import Workspace
from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span


class WorkspaceRepository(BaseRepository[WorkspaceEntity, Workspace]):
    def __init__(self):
        super().__init__(WorkspaceEntity, Workspace)

    @trace_span
    async def set_restricted(
        self, workspace_id: int, until: Optional[datetime]
    ) -> Optional[Workspace]:
        """Enter (or, with None, leave) restricted mode."""
        async with self._get_session() as session:
            await session.execute(
                update(WorkspaceEntity)
                .where(WorkspaceEntity.id == workspace_id)
                .values(restricted_until=until)
            )
            await session.flush()
        return await self.get(workspace_id)
