"""
Payment provider selection.
"""

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider

logger = get_logger(__name__)


def get_payment_provider() -> PaymentProviderInterface:
    """Stripe is the only processor; billing services see just the interface."""
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; processor calls will be rejected")
    return StripePaymentProvider()
