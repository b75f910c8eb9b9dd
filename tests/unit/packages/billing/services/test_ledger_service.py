"""
Unit tests for the billing ledger.

Runs against the test database; the live-period unique index is enforced.
"""

import pytest
from datetime import timedelta

from packages.billing.exceptions import (
    InvalidLedgerTransition,
    LedgerConflict,
    ValidationError,
)
from packages.billing.models.domain.enums import ChargeKind, ChargeStatus
from packages.billing.models.domain.invoice import ChargeQuote
from packages.billing.services.ledger_service import LedgerService
from tests.conftest import day


def make_quote(total: int = 300) -> ChargeQuote:
    return ChargeQuote(
        base_amount=300,
        usage_packs=(total - 300) // 100,
        required_packs=0,
        pack_amount=100,
        usage_charge=total - 300,
        total=total,
        currency="aud",
        description="Monthly Subscription",
    )


async def record(ledger, account_id, period_start, kind=ChargeKind.RENEWAL, total=300):
    return await ledger.record_pending(
        account_id,
        make_quote(total),
        period_start=period_start,
        period_end=period_start + timedelta(days=30),
        kind=kind,
        now=period_start,
    )


@pytest.mark.asyncio
class TestLedgerService:
    """Tests for LedgerService."""

    async def test_record_pending(self, make_account):
        account = await make_account()
        ledger = LedgerService()

        attempt = await record(ledger, account.id, day(30), total=500)

        assert attempt.status == ChargeStatus.PENDING
        assert attempt.kind == ChargeKind.RENEWAL
        assert attempt.amount == 500
        assert attempt.storage_packs == 2
        assert attempt.period_end == day(60)
        assert attempt.created_at == day(30)
        assert attempt.idempotency_key == f"charge-attempt-{attempt.id}"

    async def test_second_live_attempt_for_period_conflicts(self, make_account):
        account = await make_account()
        ledger = LedgerService()
        await record(ledger, account.id, day(30))

        with pytest.raises(LedgerConflict):
            await record(ledger, account.id, day(30))

    async def test_succeeded_attempt_blocks_period(self, make_account):
        account = await make_account()
        ledger = LedgerService()
        attempt = await record(ledger, account.id, day(30))
        await ledger.mark_succeeded(attempt.id, "pi_1", day(30))

        with pytest.raises(LedgerConflict):
            await record(ledger, account.id, day(30), kind=ChargeKind.PAY_NOW)

    async def test_failed_attempts_do_not_block_retry(self, make_account):
        account = await make_account()
        ledger = LedgerService()

        first = await record(ledger, account.id, day(30))
        await ledger.mark_failed(first.id, "Your card was declined.", day(30))
        second = await record(ledger, account.id, day(30))

        assert second.id != first.id
        assert second.status == ChargeStatus.PENDING

    async def test_other_periods_are_independent(self, make_account):
        account = await make_account()
        ledger = LedgerService()

        await record(ledger, account.id, day(30))
        other = await record(ledger, account.id, day(60))

        assert other.period_start == day(60)

    async def test_resolve_only_once(self, make_account):
        account = await make_account()
        ledger = LedgerService()
        attempt = await record(ledger, account.id, day(30))

        await ledger.mark_succeeded(attempt.id, "pi_1", day(30))

        with pytest.raises(InvalidLedgerTransition):
            await ledger.mark_failed(attempt.id, "late decline", day(30))
        with pytest.raises(InvalidLedgerTransition):
            await ledger.mark_succeeded(attempt.id, "pi_2", day(30))

        stored = await ledger.get_attempt(attempt.id)
        assert stored.status == ChargeStatus.SUCCEEDED
        assert stored.processor_reference == "pi_1"
        assert stored.resolved_at == day(30)

    async def test_rejects_non_positive_amount(self, make_account):
        account = await make_account()
        ledger = LedgerService()

        with pytest.raises(ValidationError):
            await record(ledger, account.id, day(30), total=0)

        assert await ledger.get_history(account.id) == []

    async def test_history_newest_first(self, make_account):
        account = await make_account()
        ledger = LedgerService()
        for n in range(3):
            attempt = await record(ledger, account.id, day(30 * (n + 1)))
            await ledger.mark_succeeded(attempt.id, f"pi_{n}", day(30 * (n + 1)))

        history = await ledger.get_history(account.id)
        limited = await ledger.get_history(account.id, limit=2)

        assert [a.period_start for a in history] == [day(90), day(60), day(30)]
        assert len(limited) == 2

    async def test_list_stale_pending(self, make_account):
        account = await make_account()
        ledger = LedgerService()
        stale = await record(ledger, account.id, day(30))
        await record(ledger, account.id, day(60))

        result = await ledger.list_stale_pending(day(31))

        assert [a.id for a in result] == [stale.id]
