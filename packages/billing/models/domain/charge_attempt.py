"""
Domain models for ledger entries.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import ChargeKind, ChargeStatus


class ChargeAttempt(BaseModel):
    """One attempt to collect money for one account and billing period."""

    id: int
    account_id: int
    kind: ChargeKind
    status: ChargeStatus

    amount: int
    currency: str
    base_amount: int
    storage_packs: int = 0
    storage_pack_amount: int = 0
    description: str

    period_start: datetime
    period_end: datetime

    processor_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    failure_counted: bool = False

    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def idempotency_key(self) -> str:
        """Stable key threaded through every processor call for this attempt."""
        return f"charge-attempt-{self.id}"


class ChargeAttemptCreateModel(BaseModel):
    """Model for recording a pending attempt."""

    model_config = ConfigDict(use_enum_values=True)

    account_id: int
    kind: ChargeKind
    status: ChargeStatus = ChargeStatus.PENDING
    amount: int
    currency: str
    base_amount: int
    storage_packs: int = 0
    storage_pack_amount: int = 0
    description: str
    period_start: datetime
    period_end: datetime
    created_at: Optional[datetime] = None
