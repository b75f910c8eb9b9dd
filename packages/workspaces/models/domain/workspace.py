from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Workspace(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    restricted_until: Optional[datetime] = None
    deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def is_restricted(self, now: datetime) -> bool:
        """Restricted mode is active until its expiry passes."""
        return self.restricted_until is not None and self.restricted_until > now


class WorkspaceCreateModel(BaseModel):
    """Model for creating a new workspace."""

    name: str
    description: Optional[str] = None
