"""
Domain models exchanged with the payment processor.
"""

from typing import Optional
from pydantic import BaseModel


class ChargeResult(BaseModel):
    """Outcome of a charge (or of looking one up by idempotency key)."""

    success: bool
    reference: Optional[str] = None
    failure_reason: Optional[str] = None


class PaymentMethodSummary(BaseModel):
    """Display-safe card details."""

    id: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None


class SetupIntent(BaseModel):
    """Client secret used by the frontend to collect a reusable payment method."""

    client_secret: str
    customer_id: str
