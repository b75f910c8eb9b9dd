"""Database models for billing."""

from packages.billing.models.database.billing_account import BillingAccountEntity
from packages.billing.models.database.charge_attempt import ChargeAttemptEntity
from packages.billing.models.database.reminder_record import ReminderRecordEntity
from packages.billing.models.database.metered_object import MeteredObjectEntity

__all__ = [
    "BillingAccountEntity",
    "ChargeAttemptEntity",
    "ReminderRecordEntity",
    "MeteredObjectEntity",
]
