"""
Interface for payment processors.

The engine does not implement a gateway; this is the narrow contract it needs
from one. Declines are returned as unsuccessful ChargeResults, while timeouts
and network failures raise ProcessorTransient because the outcome is unknown.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from packages.billing.models.domain.payment import (
    ChargeResult,
    PaymentMethodSummary,
    SetupIntent,
)


class PaymentProviderInterface(ABC):
    """Abstract interface for payment processors."""

    @abstractmethod
    async def create_customer(
        self, account_id: int, email: str, name: Optional[str] = None
    ) -> str:
        """
        Create a customer in the processor.

        Returns:
            customer_id: Processor customer ID
        """
        pass

    @abstractmethod
    async def create_setup_intent(self, customer_id: str) -> SetupIntent:
        """Start collecting a payment method that can be charged off-session."""
        pass

    @abstractmethod
    async def attach_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> None:
        """
        Attach a payment method to a customer and make it the default.

        Attaching a method that is already attached is not an error.
        """
        pass

    @abstractmethod
    async def charge(
        self,
        customer_id: str,
        payment_method_id: str,
        amount: int,
        currency: str,
        idempotency_key: str,
        description: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ChargeResult:
        """
        Charge a saved payment method off-session.

        Args:
            amount: Amount in minor currency units
            idempotency_key: Stable per ledger attempt; a retried call with the
                same key must never create a second charge

        Returns:
            ChargeResult with success/reference or failure_reason

        Raises:
            ProcessorTransient: timeout or network failure
        """
        pass

    @abstractmethod
    async def get_charge_status(self, idempotency_key: str) -> Optional[ChargeResult]:
        """
        Look up the outcome of a previous charge by its idempotency key.

        Returns:
            ChargeResult if the processor knows the charge, None if it never
            received it

        Raises:
            ProcessorTransient: timeout or network failure
        """
        pass

    @abstractmethod
    async def get_payment_method(
        self, payment_method_id: str
    ) -> Optional[PaymentMethodSummary]:
        """Brand, last4 and expiry of a payment method, or None if unknown."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the payment backend is available and healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
