"""
Stripe implementation of payment provider.
"""

import asyncio
from typing import Dict, Optional

import stripe

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.exceptions import ProcessorTransient
from packages.billing.models.domain.payment import (
    ChargeResult,
    PaymentMethodSummary,
    SetupIntent,
)
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)

# PaymentIntent statuses whose final outcome is not known yet
_IN_FLIGHT_STATUSES = ("processing", "requires_capture", "requires_confirmation")


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation (off-session PaymentIntents)."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key
        # Stripe retries with the same idempotency key are safe
        stripe.max_network_retries = 2
        self.timeout_seconds = (
            timeout_seconds or settings.payment_processor_timeout_seconds
        )

    async def _call(self, func, *args, **kwargs):
        """Run a blocking Stripe call with a hard upper bound on its duration."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ProcessorTransient(
                f"Payment processor did not respond within {self.timeout_seconds}s"
            ) from e
        except (stripe.error.APIConnectionError, stripe.error.RateLimitError) as e:
            raise ProcessorTransient(f"Payment processor unavailable: {e}") from e

    @trace_span
    async def create_customer(
        self, account_id: int, email: str, name: Optional[str] = None
    ) -> str:
        """Create a Stripe customer."""
        try:
            customer = await self._call(
                stripe.Customer.create,
                email=email,
                name=name,
                metadata={"account_id": str(account_id)},
                idempotency_key=f"customer-{account_id}",
            )
        except stripe.error.StripeError as e:
            logger.error(
                f"Failed to create Stripe customer: {str(e)}",
                extra={"account_id": account_id, "error": str(e)},
            )
            raise

        logger.info(
            "Created Stripe customer",
            extra={"account_id": account_id, "customer_id": customer.id},
        )
        return customer.id

    @trace_span
    async def create_setup_intent(self, customer_id: str) -> SetupIntent:
        intent = await self._call(
            stripe.SetupIntent.create,
            customer=customer_id,
            payment_method_types=["card"],
            usage="off_session",
        )
        return SetupIntent(client_secret=intent.client_secret, customer_id=customer_id)

    @trace_span
    async def attach_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> None:
        try:
            await self._call(
                stripe.PaymentMethod.attach, payment_method_id, customer=customer_id
            )
        except stripe.error.InvalidRequestError as e:
            if getattr(e, "code", None) != "resource_already_exists":
                raise
            logger.info(
                "Payment method already attached",
                extra={"customer_id": customer_id},
            )

        await self._call(
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )
        logger.info(
            "Set default payment method",
            extra={"customer_id": customer_id},
        )

    @trace_span
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
        """Create and confirm an off-session PaymentIntent."""
        intent_metadata = dict(metadata or {})
        intent_metadata["idempotency_key"] = idempotency_key

        try:
            intent = await self._call(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=currency,
                customer=customer_id,
                payment_method=payment_method_id,
                off_session=True,
                confirm=True,
                description=description,
                metadata=intent_metadata,
                idempotency_key=idempotency_key,
            )
        except stripe.error.CardError as e:
            reason = e.user_message or str(e)
            logger.warning(
                f"Card declined: {reason}",
                extra={"customer_id": customer_id, "idempotency_key": idempotency_key},
            )
            return ChargeResult(success=False, failure_reason=reason)
        except stripe.error.APIError as e:
            # Stripe-side failure: the charge may still have gone through
            logger.warning(
                f"Stripe API error during charge: {str(e)}",
                extra={"customer_id": customer_id, "idempotency_key": idempotency_key},
            )
            raise ProcessorTransient(f"Payment processor error: {e}") from e
        except stripe.error.StripeError as e:
            logger.error(
                f"Stripe charge failed: {str(e)}",
                extra={"customer_id": customer_id, "idempotency_key": idempotency_key},
            )
            return ChargeResult(success=False, failure_reason=str(e))

        return self._intent_to_result(intent)

    @trace_span
    async def get_charge_status(self, idempotency_key: str) -> Optional[ChargeResult]:
        result = await self._call(
            stripe.PaymentIntent.search,
            query=f"metadata['idempotency_key']:'{idempotency_key}'",
            limit=1,
        )
        if not result.data:
            return None

        intent = result.data[0]
        if intent.status in _IN_FLIGHT_STATUSES:
            raise ProcessorTransient(
                f"Charge {intent.id} is still {intent.status}"
            )
        return self._intent_to_result(intent)

    @trace_span
    async def get_payment_method(
        self, payment_method_id: str
    ) -> Optional[PaymentMethodSummary]:
        try:
            method = await self._call(stripe.PaymentMethod.retrieve, payment_method_id)
        except stripe.error.InvalidRequestError:
            logger.warning(f"Payment method {payment_method_id} not found")
            return None

        card = getattr(method, "card", None)
        return PaymentMethodSummary(
            id=method.id,
            brand=card.brand if card else None,
            last4=card.last4 if card else None,
            exp_month=card.exp_month if card else None,
            exp_year=card.exp_year if card else None,
        )

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            await self._call(stripe.Account.retrieve)
            return True
        except Exception as e:
            logger.error(f"Payment health check failed: {e}")
            return False

    @staticmethod
    def _intent_to_result(intent) -> ChargeResult:
        if intent.status == "succeeded":
            return ChargeResult(success=True, reference=intent.id)

        error = getattr(intent, "last_payment_error", None)
        reason = (
            getattr(error, "message", None)
            if error
            else f"Payment not completed (status: {intent.status})"
        )
        return ChargeResult(success=False, reference=intent.id, failure_reason=reason)
