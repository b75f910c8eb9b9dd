from datetime import datetime

from common.core.exceptions import AppException


class WorkspaceRestrictedError(AppException):
    """Raised when a mutation targets a workspace in restricted mode."""

    kind = "workspace_restricted"
    status_code = 423

    def __init__(self, workspace_id: int, restricted_until: datetime):
        self.workspace_id = workspace_id
        self.restricted_until = restricted_until
        self.message = (
            f"Workspace {workspace_id} is read-only until "
            f"{restricted_until.strftime('%Y-%m-%d')}."
        )
        super().__init__(self.message)
