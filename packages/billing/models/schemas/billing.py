"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from packages.billing.models.domain.billing_account import BillingAccount
from packages.billing.models.domain.enums import AccountState, ChargeKind, ChargeStatus
from packages.billing.models.domain.payment import PaymentMethodSummary


# ============================================================================
# Payment Method Schemas
# ============================================================================


class SetupIntentResponse(BaseModel):
    """Client secret for confirming a card on the frontend."""

    client_secret: str
    customer_id: str


class SavePaymentMethodRequest(BaseModel):
    payment_method_id: str = Field(..., description="Processor payment method id")


class PaymentMethodResponse(BaseModel):
    has_payment_method: bool
    payment_method: Optional[PaymentMethodSummary] = None


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscribeRequest(BaseModel):
    """Start a subscription with an optional number of storage packs."""

    storage_packs: int = Field(default=0, description="Extra storage packs to buy")


class UpdateStoragePacksRequest(BaseModel):
    storage_packs: int


class SubscriptionResponse(BaseModel):
    """Subscription state after a lifecycle operation."""

    account_id: int
    state: AccountState
    is_subscribed: bool
    subscription_start_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    cancel_at_period_end: bool = False
    failure_count: int = 0
    storage_packs: int = 0
    storage_limit_gb: int

    @classmethod
    def from_account(
        cls, account: BillingAccount, state: AccountState, now: datetime
    ) -> "SubscriptionResponse":
        return cls(
            account_id=account.id,
            state=state,
            is_subscribed=account.is_subscribed,
            subscription_start_date=account.subscription_start_date,
            renewal_date=account.renewal_date,
            subscription_end_date=account.subscription_end_date,
            cancel_at_period_end=account.has_scheduled_cancellation(now),
            failure_count=account.failure_count,
            storage_packs=account.storage_packs,
            storage_limit_gb=account.storage_limit_gb,
        )


# ============================================================================
# History Schemas
# ============================================================================


class BillingHistoryItem(BaseModel):
    """One ledger entry as shown to the account holder."""

    id: int
    kind: ChargeKind
    status: ChargeStatus
    amount: int
    currency: str
    description: str
    period_start: datetime
    period_end: datetime
    failure_reason: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BillingHistoryResponse(BaseModel):
    items: List[BillingHistoryItem]
