"""Billing services."""

from packages.billing.services.billing_sweep_service import BillingSweepService
from packages.billing.services.collection_service import CollectionService
from packages.billing.services.reminder_service import ReminderService
from packages.billing.services.subscription_service import SubscriptionService

__all__ = [
    "BillingSweepService",
    "CollectionService",
    "ReminderService",
    "SubscriptionService",
]
