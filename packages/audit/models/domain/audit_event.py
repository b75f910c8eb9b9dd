from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class AuditEventType(str, Enum):
    WORKSPACE_RESTRICTED = "workspace_restricted"
    MEMBER_ROLE_CHANGED = "member_role_changed"


class AuditEvent(BaseModel):
    id: int
    event_type: AuditEventType
    workspace_id: Optional[int] = None
    account_id: Optional[int] = None
    membership_id: Optional[int] = None
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditEventCreateModel(BaseModel):
    model_config = {"use_enum_values": True}

    event_type: AuditEventType
    workspace_id: Optional[int] = None
    account_id: Optional[int] = None
    membership_id: Optional[int] = None
    message: str
