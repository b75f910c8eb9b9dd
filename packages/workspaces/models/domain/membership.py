from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from packages.workspaces.models.domain.enums import PrivilegeLevel


class Membership(BaseModel):
    id: int
    workspace_id: int
    account_id: int
    privilege: PrivilegeLevel
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def is_elevated(self) -> bool:
        return self.privilege == PrivilegeLevel.ELEVATED


class MembershipCreateModel(BaseModel):
    """Model for adding an account to a workspace."""

    model_config = {"use_enum_values": True}

    workspace_id: int
    account_id: int
    privilege: PrivilegeLevel = PrivilegeLevel.STANDARD
