"""
Domain models for metered usage.
"""

from datetime import datetime
from pydantic import BaseModel


class MeteredObject(BaseModel):
    """A stored object counted toward its workspace's metered usage."""

    id: int
    workspace_id: int
    storage_key: str
    size_bytes: int
    deleted: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class MeteredObjectCreateModel(BaseModel):
    workspace_id: int
    storage_key: str
    size_bytes: int


class UsageSnapshot(BaseModel):
    """Point-in-time usage for one billing decision. Never cached."""

    account_id: int
    used_bytes: int
    measured_at: datetime
