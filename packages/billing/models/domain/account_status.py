"""
Domain model for the account status view.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import AccountState


class AccountStatus(BaseModel):
    account_id: int
    state: AccountState
    is_subscribed: bool
    failure_count: int
    trial_end: datetime
    renewal_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    cancel_at_period_end: bool = False
    storage_used_bytes: int
    storage_used_gb: float
    storage_limit_gb: int
    storage_packs: int
    has_payment_method: bool
