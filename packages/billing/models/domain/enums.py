"""
Billing enums - strongly typed enumerations for account and ledger states.
"""

from enum import Enum


class AccountState(str, Enum):
    """
    Classified billing state of an account.

    Flow: trial -> active -> past_due (1..threshold-1) -> terminated
    Permanent accounts sit outside the flow and are never billed.
    """

    PERMANENT = "permanent"  # Internal/support account, never billed
    TRIAL = "trial"  # Never subscribed, within or awaiting conversion
    ACTIVE = "active"  # Subscribed, last charge succeeded
    PAST_DUE = "past_due"  # Subscribed, 1..threshold-1 consecutive failures
    TERMINATED = "terminated"  # Failure threshold reached, not subscribed
    EXPIRED = "expired"  # Not subscribed after trial or scheduled cancellation

    def is_billable(self) -> bool:
        """Check if the sweep should attempt collection for this state."""
        return self in (AccountState.ACTIVE, AccountState.PAST_DUE)

    def is_paying(self) -> bool:
        """Check if this account currently provides paid elevated coverage."""
        return self in (
            AccountState.PERMANENT,
            AccountState.ACTIVE,
            AccountState.PAST_DUE,
        )

    def receives_reminders(self) -> bool:
        """Check if the reminder sweep considers this state."""
        return self in (AccountState.TRIAL, AccountState.ACTIVE, AccountState.PAST_DUE)


class ChargeStatus(str, Enum):
    """
    Ledger entry status.

    Flow: pending -> succeeded | failed (exactly one transition)
    """

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self != ChargeStatus.PENDING


class ChargeKind(str, Enum):
    """What triggered a charge attempt."""

    FIRST = "first"  # start_subscription
    RENEWAL = "renewal"  # nightly sweep
    PAY_NOW = "pay_now"  # user-initiated early payment


class SweepOutcomeStatus(str, Enum):
    """Per-account result of a collection sweep."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINATED = "terminated"
    CANCELLED = "cancelled"  # Scheduled cancellation took effect
    SKIPPED = "skipped"  # Live ledger entry already exists for the period
    ERROR = "error"


class CascadeActionType(str, Enum):
    """Entitlement consequence applied to one workspace."""

    WORKSPACE_RESTRICTED = "workspace_restricted"
    ROLE_DEMOTED = "role_demoted"
