"""
Account classification and due-date resolution.

`classify_account` is the single place that decides an account's billing
state; everything else (sweep, reminders, cascade, API) consumes it.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from common.core.config import settings
from common.core.constants import SECONDS_PER_DAY
from packages.billing.models.domain.billing_account import BillingAccount
from packages.billing.models.domain.enums import AccountState


def is_permanent(
    account: BillingAccount, now: datetime, horizon_years: Optional[int] = None
) -> bool:
    """Explicit flag, or an end date implausibly far in the future."""
    if account.is_permanent:
        return True
    years = (
        settings.billing_permanent_horizon_years
        if horizon_years is None
        else horizon_years
    )
    return (
        account.subscription_end_date is not None
        and account.subscription_end_date > now + timedelta(days=365 * years)
    )


def trial_end(account: BillingAccount, trial_days: Optional[int] = None) -> datetime:
    days = settings.billing_trial_days if trial_days is None else trial_days
    return account.created_at + timedelta(days=days)


def classify_account(account: BillingAccount, now: datetime) -> AccountState:
    if is_permanent(account, now):
        return AccountState.PERMANENT
    if account.is_subscribed:
        return AccountState.PAST_DUE if account.failure_count > 0 else AccountState.ACTIVE
    if account.terminated_at is not None:
        return AccountState.TERMINATED
    if account.subscription_start_date is None and now < trial_end(account):
        return AccountState.TRIAL
    return AccountState.EXPIRED


def days_until(due_date: datetime, now: datetime) -> int:
    """ceil((due - now) / 1 day); 0 when due now or overdue."""
    seconds = (due_date - now).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


class DueDateResolver:
    """Next obligation date as the latest of now, trial end and renewal date."""

    def __init__(
        self,
        trial_days: Optional[int] = None,
        pay_now_window_days: Optional[int] = None,
    ):
        self.trial_days = settings.billing_trial_days if trial_days is None else trial_days
        self.pay_now_window_days = (
            settings.billing_pay_now_window_days
            if pay_now_window_days is None
            else pay_now_window_days
        )

    def trial_end(self, account: BillingAccount) -> datetime:
        return trial_end(account, self.trial_days)

    def resolve_due_date(
        self, account: BillingAccount, now: datetime
    ) -> Optional[datetime]:
        """
        None for permanent accounts. Otherwise never earlier than now, never
        earlier than trial end, and for subscribed accounts never earlier than
        the current renewal date.
        """
        if is_permanent(account, now):
            return None

        candidates = [now, self.trial_end(account)]
        if account.is_subscribed and account.renewal_date is not None:
            candidates.append(account.renewal_date)
        return max(candidates)

    def days_until_due(self, account: BillingAccount, now: datetime) -> Optional[int]:
        due_date = self.resolve_due_date(account, now)
        if due_date is None:
            return None
        return days_until(due_date, now)

    def can_pay_now(self, account: BillingAccount, now: datetime) -> bool:
        """Trial accounts any time, others only inside the pay-early window."""
        state = classify_account(account, now)
        if state == AccountState.PERMANENT:
            return False
        if state == AccountState.TRIAL:
            return True
        return self.days_until_due(account, now) <= self.pay_now_window_days
