"""
Unit tests for the Stripe payment provider with the Stripe SDK mocked.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import stripe

from packages.billing.exceptions import ProcessorTransient
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider


def intent(status="succeeded", intent_id="pi_123", error=None):
    return SimpleNamespace(id=intent_id, status=status, last_payment_error=error)


@pytest.fixture
def provider():
    return StripePaymentProvider(timeout_seconds=5)


async def charge(provider, **overrides):
    kwargs = dict(
        customer_id="cus_1",
        payment_method_id="pm_1",
        amount=500,
        currency="aud",
        idempotency_key="charge-attempt-7",
        description="Monthly Subscription + 2 storage packs",
        metadata={"account_id": "1"},
    )
    kwargs.update(overrides)
    return await provider.charge(**kwargs)


class TestCharge:
    async def test_successful_charge(self, provider):
        with patch.object(
            stripe.PaymentIntent, "create", MagicMock(return_value=intent())
        ) as create:
            result = await charge(provider)

        assert result.success is True
        assert result.reference == "pi_123"
        kwargs = create.call_args.kwargs
        assert kwargs["idempotency_key"] == "charge-attempt-7"
        assert kwargs["off_session"] is True
        assert kwargs["confirm"] is True
        assert kwargs["metadata"] == {
            "account_id": "1",
            "idempotency_key": "charge-attempt-7",
        }

    async def test_card_declined(self, provider):
        error = stripe.error.CardError(
            "Your card was declined.", param=None, code="card_declined"
        )
        with patch.object(stripe.PaymentIntent, "create", MagicMock(side_effect=error)):
            result = await charge(provider)

        assert result.success is False
        assert result.failure_reason == "Your card was declined."

    async def test_incomplete_intent_is_a_failure(self, provider):
        pending_auth = intent(
            status="requires_action",
            error=SimpleNamespace(message="Authentication required"),
        )
        with patch.object(
            stripe.PaymentIntent, "create", MagicMock(return_value=pending_auth)
        ):
            result = await charge(provider)

        assert result.success is False
        assert result.reference == "pi_123"
        assert result.failure_reason == "Authentication required"

    async def test_network_error_is_transient(self, provider):
        error = stripe.error.APIConnectionError("Connection reset")
        with patch.object(stripe.PaymentIntent, "create", MagicMock(side_effect=error)):
            with pytest.raises(ProcessorTransient):
                await charge(provider)

    async def test_stripe_server_error_is_transient(self, provider):
        error = stripe.error.APIError("Internal server error", http_status=500)
        with patch.object(stripe.PaymentIntent, "create", MagicMock(side_effect=error)):
            with pytest.raises(ProcessorTransient):
                await charge(provider)

    async def test_invalid_request_is_a_failure(self, provider):
        error = stripe.error.InvalidRequestError("No such customer", param="customer")
        with patch.object(stripe.PaymentIntent, "create", MagicMock(side_effect=error)):
            result = await charge(provider)

        assert result.success is False
        assert "No such customer" in result.failure_reason


class TestChargeStatus:
    async def test_unknown_key(self, provider):
        with patch.object(
            stripe.PaymentIntent, "search", MagicMock(return_value=SimpleNamespace(data=[]))
        ) as search:
            result = await provider.get_charge_status("charge-attempt-7")

        assert result is None
        assert "charge-attempt-7" in search.call_args.kwargs["query"]

    async def test_settled_charge(self, provider):
        found = SimpleNamespace(data=[intent(intent_id="pi_late")])
        with patch.object(stripe.PaymentIntent, "search", MagicMock(return_value=found)):
            result = await provider.get_charge_status("charge-attempt-7")

        assert result.success is True
        assert result.reference == "pi_late"

    async def test_in_flight_charge_is_transient(self, provider):
        found = SimpleNamespace(data=[intent(status="processing")])
        with patch.object(stripe.PaymentIntent, "search", MagicMock(return_value=found)):
            with pytest.raises(ProcessorTransient):
                await provider.get_charge_status("charge-attempt-7")


class TestCustomersAndMethods:
    async def test_create_customer(self, provider):
        with patch.object(
            stripe.Customer, "create", MagicMock(return_value=SimpleNamespace(id="cus_9"))
        ) as create:
            customer_id = await provider.create_customer(9, "a@example.com", "A")

        assert customer_id == "cus_9"
        assert create.call_args.kwargs["idempotency_key"] == "customer-9"

    async def test_attach_sets_default_method(self, provider):
        with patch.object(stripe.PaymentMethod, "attach", MagicMock()) as attach, patch.object(
            stripe.Customer, "modify", MagicMock()
        ) as modify:
            await provider.attach_payment_method("cus_1", "pm_2")

        attach.assert_called_once_with("pm_2", customer="cus_1")
        modify.assert_called_once_with(
            "cus_1", invoice_settings={"default_payment_method": "pm_2"}
        )

    async def test_missing_payment_method(self, provider):
        error = stripe.error.InvalidRequestError("No such PaymentMethod", param="id")
        with patch.object(
            stripe.PaymentMethod, "retrieve", MagicMock(side_effect=error)
        ):
            assert await provider.get_payment_method("pm_gone") is None

    async def test_health_check_failure(self, provider):
        error = stripe.error.AuthenticationError("Invalid API key")
        with patch.object(stripe.Account, "retrieve", MagicMock(side_effect=error)):
            assert await provider.health_check() is False
