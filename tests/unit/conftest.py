import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from packages.billing.models.domain.payment import (
    ChargeResult,
    PaymentMethodSummary,
    SetupIntent,
)


@pytest.fixture
def mock_payment_provider():
    """Create a mock payment provider whose charges succeed by default."""
    provider = AsyncMock()
    provider.create_customer = AsyncMock(return_value="cus_new")
    provider.create_setup_intent = AsyncMock(
        return_value=SetupIntent(client_secret="seti_secret_123", customer_id="cus_new")
    )
    provider.attach_payment_method = AsyncMock(return_value=None)
    provider.charge = AsyncMock(
        return_value=ChargeResult(success=True, reference="pi_test_123")
    )
    provider.get_charge_status = AsyncMock(return_value=None)
    provider.get_payment_method = AsyncMock(
        return_value=PaymentMethodSummary(
            id="pm_sample", brand="visa", last4="4242", exp_month=12, exp_year=2030
        )
    )
    provider.health_check = AsyncMock(return_value=True)
    return provider


@pytest.fixture(autouse=True)
def mock_get_payment_provider(mock_payment_provider):
    """Automatically mock get_payment_provider for all unit tests."""
    with patch(
        "packages.billing.services.collection_service.get_payment_provider",
        return_value=mock_payment_provider,
    ), patch(
        "packages.billing.services.subscription_service.get_payment_provider",
        return_value=mock_payment_provider,
    ):
        yield


@pytest.fixture
def mock_notification_sender():
    sender = AsyncMock()
    sender.send_reminder = AsyncMock(return_value=None)
    return sender


@pytest.fixture(autouse=True)
def mock_get_notification_sender(mock_notification_sender):
    """Automatically mock get_notification_sender for all unit tests."""
    with patch(
        "packages.billing.services.reminder_service.get_notification_sender",
        return_value=mock_notification_sender,
    ):
        yield


@pytest.fixture
def mock_lock_provider():
    """Create a mock lock provider instance for testing."""
    lock = AsyncMock()
    lock.connect = AsyncMock(return_value=True)
    lock.disconnect = AsyncMock(return_value=None)
    lock.acquire_lock = AsyncMock(return_value="test-lock-token")
    lock.release_lock = AsyncMock(return_value=True)
    return lock


@pytest.fixture(autouse=True)
def mock_get_lock_provider(mock_lock_provider):
    """Automatically mock get_lock_provider for all unit tests."""
    with patch(
        "packages.billing.services.billing_sweep_service.get_lock_provider",
        return_value=mock_lock_provider,
    ):
        yield


@pytest.fixture
def mock_span():
    """Create a mock span instance for testing telemetry."""
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=None)
    return span


@pytest.fixture
def mock_start_span(mock_span):
    """Create a mock start_span function that returns mock_span."""
    with patch(
        "common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span",
        return_value=mock_span,
    ) as mock:
        yield mock
