"""
Domain models for charge computation and invoice previews.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import AccountState


class ChargeQuote(BaseModel):
    """Output of the charge calculator. Amounts are integer minor units."""

    base_amount: int
    usage_packs: int
    required_packs: int
    pack_amount: int
    usage_charge: int
    total: int
    currency: str
    description: str


class Invoice(BaseModel):
    """Read-only preview of what an account owes next and when."""

    account_id: int
    state: AccountState
    base_amount: int
    usage_packs: int
    usage_charge: int
    total: int
    currency: str
    usage_bytes: int
    due_date: Optional[datetime] = None
    days_until_due: Optional[int] = None
    can_pay_now: bool = False


class Pricing(BaseModel):
    """Public pricing catalogue."""

    base_fee: int
    pack_fee: int
    pack_size_gb: int
    free_allowance_gb: int
    currency: str
    trial_days: int
    billing_cycle_days: int
