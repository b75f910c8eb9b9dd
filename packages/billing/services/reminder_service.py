"""
Payment reminders sent a fixed number of days before the due date.
"""

from datetime import datetime
from typing import List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.billing_account import BillingAccount
from packages.billing.models.domain.enums import AccountState
from packages.billing.models.domain.reminder import ReminderNotice
from packages.billing.models.domain.sweep import ReminderSummary
from packages.billing.providers.notifications.factory import get_notification_sender
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.repositories.reminder_repository import ReminderRepository
from packages.billing.services.charge_calculator import ChargeCalculator
from packages.billing.services.due_date_resolver import (
    DueDateResolver,
    classify_account,
    days_until,
)
from packages.billing.services.usage_aggregator import UsageAggregator

logger = get_logger(__name__)


class ReminderService:
    def __init__(self, offsets_days: Optional[List[int]] = None):
        self.account_repo = BillingAccountRepository()
        self.reminder_repo = ReminderRepository()
        self.usage = UsageAggregator()
        self.calculator = ChargeCalculator()
        self.resolver = DueDateResolver()
        self.notifier = get_notification_sender()
        self.offsets_days = set(
            settings.billing_reminder_offsets_days if offsets_days is None else offsets_days
        )

    @trace_span
    async def run_reminder_sweep(self, now: Optional[datetime] = None) -> ReminderSummary:
        """Send due reminders; at most one per account per calendar day."""
        now = now or utcnow()
        summary = ReminderSummary()

        for account in await self.account_repo.list_reminder_candidates():
            summary.checked += 1
            try:
                if await self.process_account(account, now):
                    summary.sent += 1
                    summary.sent_account_ids.append(account.id)
            except Exception as e:
                summary.errors += 1
                logger.error(
                    f"Reminder failed for account {account.id}: {e}",
                    extra={"account_id": account.id},
                    exc_info=True,
                )

        logger.info(
            f"Reminder sweep: {summary.sent} sent of {summary.checked} checked",
            extra={"sent": summary.sent, "checked": summary.checked, "errors": summary.errors},
        )
        return summary

    @trace_span
    async def process_account(self, account: BillingAccount, now: datetime) -> bool:
        """Send this account's reminder if today is one of the offsets. True if sent."""
        state = classify_account(account, now)
        if not state.receives_reminders():
            return False

        due_date = self.resolver.resolve_due_date(account, now)
        days = days_until(due_date, now)
        if account.is_subscribed and days > settings.billing_pay_now_window_days:
            return False
        if days not in self.offsets_days:
            return False

        record = await self.reminder_repo.get_by_account(account.id)
        if record and record.last_sent_at.date() == now.date():
            return False

        usage = await self.usage.snapshot(account.id, now)
        quote = self.calculator.calculate(
            usage.used_bytes, purchased_packs=account.storage_packs
        )
        notice = ReminderNotice(
            account_id=account.id,
            email=account.email,
            display_name=account.display_name,
            projected_amount=quote.total,
            currency=quote.currency,
            due_date=due_date,
            days_until_due=days,
            is_trial=state == AccountState.TRIAL,
        )

        await self.notifier.send_reminder(notice)
        await self.reminder_repo.record_sent(account.id, now, days)

        logger.info(
            f"Sent {days}-day reminder to account {account.id}",
            extra={"account_id": account.id, "due_date": due_date.isoformat()},
        )
        return True
