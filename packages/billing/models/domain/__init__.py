"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    AccountState,
    ChargeStatus,
    ChargeKind,
    SweepOutcomeStatus,
    CascadeActionType,
)
from packages.billing.models.domain.billing_account import (
    BillingAccount,
    BillingAccountCreateModel,
    BillingAccountUpdateModel,
)
from packages.billing.models.domain.charge_attempt import (
    ChargeAttempt,
    ChargeAttemptCreateModel,
)

__all__ = [
    # Enums
    "AccountState",
    "ChargeStatus",
    "ChargeKind",
    "SweepOutcomeStatus",
    "CascadeActionType",
    # Account
    "BillingAccount",
    "BillingAccountCreateModel",
    "BillingAccountUpdateModel",
    # Ledger
    "ChargeAttempt",
    "ChargeAttemptCreateModel",
]
