"""
Unit tests for restricted-mode enforcement on workspaces.
"""

import pytest

from common.core.exceptions import NotFoundError
from packages.workspaces.exceptions import WorkspaceRestrictedError
from packages.workspaces.models.domain.enums import PrivilegeLevel
from packages.workspaces.repositories.workspace_repository import WorkspaceRepository
from packages.workspaces.services.workspace_service import WorkspaceService
from tests.conftest import day


@pytest.mark.asyncio
class TestWorkspaceService:
    """Tests for WorkspaceService."""

    async def test_creator_is_elevated(self, make_account, make_workspace):
        owner = await make_account()
        workspace = await make_workspace(owner)

        holders = await WorkspaceService().list_elevated_holders(workspace.id)

        assert [h.account_id for h in holders] == [owner.id]
        assert holders[0].privilege == PrivilegeLevel.ELEVATED

    async def test_restricted_workspace_rejects_writes(self, make_account, make_workspace):
        owner = await make_account()
        workspace = await make_workspace(owner)
        await WorkspaceRepository().set_restricted(workspace.id, day(62))
        service = WorkspaceService()

        with pytest.raises(WorkspaceRestrictedError) as exc_info:
            await service.ensure_writable(workspace.id, now=day(40))

        assert exc_info.value.message == (
            f"Workspace {workspace.id} is read-only until 2026-05-02."
        )

    async def test_restriction_expires(self, make_account, make_workspace):
        owner = await make_account()
        workspace = await make_workspace(owner)
        await WorkspaceRepository().set_restricted(workspace.id, day(62))

        writable = await WorkspaceService().ensure_writable(workspace.id, now=day(62))

        assert writable.id == workspace.id

    async def test_add_member_blocked_while_restricted(
        self, make_account, make_workspace
    ):
        owner = await make_account()
        guest = await make_account()
        workspace = await make_workspace(owner)
        # Far enough ahead that the real clock is still inside the window
        await WorkspaceRepository().set_restricted(workspace.id, day(3650))

        with pytest.raises(WorkspaceRestrictedError):
            await WorkspaceService().add_member(workspace.id, guest.id)

    async def test_reads_still_work_while_restricted(self, make_account, make_workspace):
        owner = await make_account()
        workspace = await make_workspace(owner)
        await WorkspaceRepository().set_restricted(workspace.id, day(3650))

        fetched = await WorkspaceService().get_workspace(workspace.id)

        assert fetched.restricted_until == day(3650)

    async def test_unknown_workspace(self):
        with pytest.raises(NotFoundError):
            await WorkspaceService().ensure_writable(987654)
