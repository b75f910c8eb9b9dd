"""
Domain models for billing accounts.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class BillingAccount(BaseModel):
    """
    Billing account domain model.

    Holds everything the engine needs to classify an account:
    - Subscription flag and start/renewal/end dates
    - Consecutive failure counter (reset on any successful charge)
    - Processor customer and payment method references
    - Purchased storage packs and the resulting allowance
    """

    id: int
    email: str
    display_name: Optional[str] = None

    is_subscribed: bool = False
    is_permanent: bool = False
    subscription_start_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    terminated_at: Optional[datetime] = None

    failure_count: int = 0
    last_billing_attempt_at: Optional[datetime] = None
    cascade_pending: bool = False

    processor_customer_id: Optional[str] = None
    processor_payment_method_id: Optional[str] = None

    storage_packs: int = 0
    storage_limit_gb: int = 10

    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def has_payment_method(self) -> bool:
        return bool(self.processor_customer_id and self.processor_payment_method_id)

    def has_scheduled_cancellation(self, now: datetime) -> bool:
        """A cancellation is scheduled while its end date is still ahead."""
        return (
            self.is_subscribed
            and self.subscription_end_date is not None
            and self.subscription_end_date > now
        )


class BillingAccountCreateModel(BaseModel):
    """Model for creating a billing account."""

    email: str
    display_name: Optional[str] = None
    is_permanent: bool = False
    is_subscribed: bool = False
    renewal_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BillingAccountUpdateModel(BaseModel):
    """Model for updating a billing account. Only explicitly set fields are written."""

    is_subscribed: Optional[bool] = None
    subscription_start_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    terminated_at: Optional[datetime] = None

    failure_count: Optional[int] = None
    last_billing_attempt_at: Optional[datetime] = None
    cascade_pending: Optional[bool] = None

    processor_customer_id: Optional[str] = None
    processor_payment_method_id: Optional[str] = None

    storage_packs: Optional[int] = None
    storage_limit_gb: Optional[int] = None
