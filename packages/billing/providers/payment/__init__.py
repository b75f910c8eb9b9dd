"""Payment processor integration: customers, saved cards and off-session charges."""

from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface

__all__ = ["PaymentProviderInterface", "get_payment_provider"]
