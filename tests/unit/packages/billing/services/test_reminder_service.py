"""
Unit tests for payment reminders.
"""

import pytest
from datetime import timedelta

from packages.billing.repositories.reminder_repository import ReminderRepository
from packages.billing.services.reminder_service import ReminderService
from tests.conftest import day


async def days_reminded(service, first_day, last_day):
    sent_on = []
    for n in range(first_day, last_day + 1):
        summary = await service.run_reminder_sweep(now=day(n))
        if summary.sent:
            sent_on.append(n)
    return sent_on


@pytest.mark.asyncio
class TestReminderService:
    """Tests for ReminderService."""

    async def test_trial_account_reminded_five_and_one_days_out(
        self, make_account, mock_notification_sender
    ):
        account = await make_account()
        service = ReminderService()

        sent_on = await days_reminded(service, 0, 21)

        assert sent_on == [15, 19]
        notice = mock_notification_sender.send_reminder.call_args_list[0].args[0]
        assert notice.account_id == account.id
        assert notice.email == account.email
        assert notice.is_trial is True
        assert notice.days_until_due == 5
        assert notice.due_date == day(20)
        assert notice.projected_amount == 300

    async def test_subscriber_reminded_before_renewal(
        self, make_subscriber, mock_notification_sender
    ):
        account = await make_subscriber(day(30), storage_packs=2)
        service = ReminderService()

        sent_on = await days_reminded(service, 20, 29)

        assert sent_on == [25, 29]
        notice = mock_notification_sender.send_reminder.call_args.args[0]
        assert notice.account_id == account.id
        assert notice.is_trial is False
        assert notice.days_until_due == 1
        # Purchased packs are billed even without usage
        assert notice.projected_amount == 500

    async def test_only_one_reminder_per_day(self, make_account, mock_notification_sender):
        account = await make_account()
        service = ReminderService()

        first = await service.run_reminder_sweep(now=day(15))
        second = await service.run_reminder_sweep(now=day(15) + timedelta(hours=3))

        assert first.sent_account_ids == [account.id]
        assert second.sent == 0
        assert mock_notification_sender.send_reminder.call_count == 1

        record = await ReminderRepository().get_by_account(account.id)
        assert record.last_sent_at == day(15)
        assert record.last_offset_days == 5

    async def test_permanent_and_terminated_accounts_get_nothing(
        self, make_account, mock_notification_sender
    ):
        await make_account(is_permanent=True)
        await make_account(terminated_at=day(2), subscription_start_date=day(-28))
        service = ReminderService()

        sent_on = await days_reminded(service, 0, 21)

        assert sent_on == []
        mock_notification_sender.send_reminder.assert_not_called()

    async def test_custom_offsets(self, make_account, mock_notification_sender):
        await make_account()
        service = ReminderService(offsets_days=[3])

        assert await days_reminded(service, 0, 21) == [17]

    async def test_sender_failure_is_counted_and_not_recorded(
        self, make_account, mock_notification_sender
    ):
        failing = await make_account()
        other = await make_account()
        mock_notification_sender.send_reminder.side_effect = [
            RuntimeError("webhook down"),
            None,
        ]
        service = ReminderService()

        summary = await service.run_reminder_sweep(now=day(15))

        assert summary.checked == 2
        assert summary.errors == 1
        assert summary.sent_account_ids == [other.id]
        assert await ReminderRepository().get_by_account(failing.id) is None
