"""
Billing error kinds.

Every error carries a stable ``kind`` (returned to API clients) and the HTTP
status the API layer maps it to.
"""

from common.core.exceptions import AppException


class BillingError(AppException):
    """Base class for billing failures surfaced to callers."""

    kind = "billing_error"
    status_code = 400


class ValidationError(BillingError):
    """Bad input, rejected before any ledger write."""

    kind = "validation_error"
    status_code = 400


class AccountNotFound(BillingError):
    kind = "account_not_found"
    status_code = 404


class NoPaymentMethod(BillingError):
    """Cannot start or charge without a saved processor customer and method."""

    kind = "no_payment_method"
    status_code = 400


class ProcessorDeclined(BillingError):
    """Card or processor-level refusal."""

    kind = "processor_declined"
    status_code = 402


class ProcessorTransient(BillingError):
    """Timeout or network failure; outcome unknown until reconciled."""

    kind = "processor_transient"
    status_code = 503


class AlreadyScheduledForCancellation(BillingError):
    kind = "already_scheduled_for_cancellation"
    status_code = 409


class NotEligibleToReactivate(BillingError):
    kind = "not_eligible_to_reactivate"
    status_code = 409


class LedgerConflict(BillingError):
    """A live attempt for this account blocks a new charge (same period, or not yet confirmed)."""

    kind = "ledger_conflict"
    status_code = 409


class InvalidLedgerTransition(BillingError):
    """An attempt that already left `pending` was resolved again."""

    kind = "invalid_ledger_transition"
    status_code = 409
