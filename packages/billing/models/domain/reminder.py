"""
Domain models for payment reminders.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ReminderRecord(BaseModel):
    id: int
    account_id: int
    last_sent_at: datetime
    last_offset_days: int

    model_config = ConfigDict(from_attributes=True)


class ReminderNotice(BaseModel):
    """Payload handed to the notification collaborator."""

    account_id: int
    email: str
    display_name: Optional[str] = None
    projected_amount: int
    currency: str
    due_date: datetime
    days_until_due: int
    is_trial: bool
