"""
Domain models reporting sweep, reconciliation and cascade results.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from packages.billing.models.domain.enums import CascadeActionType, SweepOutcomeStatus


class CascadeAction(BaseModel):
    """One entitlement consequence applied to one workspace."""

    workspace_id: int
    action: CascadeActionType
    membership_id: Optional[int] = None
    restricted_until: Optional[datetime] = None
    message: str


class AccountOutcome(BaseModel):
    """Result of processing one account during a sweep."""

    account_id: int
    status: SweepOutcomeStatus
    attempt_id: Optional[int] = None
    amount: Optional[int] = None
    failure_count: Optional[int] = None
    error: Optional[str] = None
    cascade: List[CascadeAction] = Field(default_factory=list)


class SweepSummary(BaseModel):
    """Collection sweep summary: one outcome per due account."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: int = 0
    outcomes: List[AccountOutcome] = Field(default_factory=list)

    def add(self, outcome: AccountOutcome) -> None:
        self.processed += 1
        self.outcomes.append(outcome)
        if outcome.status == SweepOutcomeStatus.SUCCEEDED:
            self.succeeded += 1
        elif outcome.status in (
            SweepOutcomeStatus.FAILED,
            SweepOutcomeStatus.TERMINATED,
        ):
            self.failed += 1
        elif outcome.status == SweepOutcomeStatus.ERROR:
            self.errors += 1


class ReconciliationSummary(BaseModel):
    """Result of resolving stale pending ledger entries."""

    checked: int = 0
    succeeded: int = 0
    failed: int = 0
    still_pending: int = 0


class CascadeRetrySummary(BaseModel):
    """Terminated accounts whose unfinished cascade was run again."""

    checked: int = 0
    completed: int = 0
    actions: List[CascadeAction] = Field(default_factory=list)


class ReminderSummary(BaseModel):
    """Reminder sweep summary."""

    checked: int = 0
    sent: int = 0
    errors: int = 0
    sent_account_ids: List[int] = Field(default_factory=list)


class NightlySweepSummary(BaseModel):
    """Everything one scheduled run did."""

    started_at: datetime
    skipped: bool = False
    reconciliation: ReconciliationSummary = Field(default_factory=ReconciliationSummary)
    cascades: CascadeRetrySummary = Field(default_factory=CascadeRetrySummary)
    collection: SweepSummary = Field(default_factory=SweepSummary)
    reminders: ReminderSummary = Field(default_factory=ReminderSummary)
