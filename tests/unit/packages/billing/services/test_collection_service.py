"""
Unit tests for the collection sweep and pending reconciliation.

Scenarios run day by day against the test database with a mocked processor.
"""

import pytest
from datetime import timedelta

from common.core.constants import GIGABYTE
from packages.audit.services.audit_service import AuditService
from packages.billing.exceptions import ProcessorTransient
from packages.billing.models.domain.enums import (
    CascadeActionType,
    ChargeKind,
    ChargeStatus,
    SweepOutcomeStatus,
)
from packages.billing.models.domain.payment import ChargeResult
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.services.charge_calculator import ChargeCalculator
from packages.billing.services.collection_service import CollectionService
from packages.billing.services.ledger_service import LedgerService
from packages.workspaces.repositories.workspace_repository import WorkspaceRepository
from tests.conftest import day

DECLINED = ChargeResult(success=False, failure_reason="Your card was declined.")


def outcome_for(summary, account_id):
    return next(o for o in summary.outcomes if o.account_id == account_id)


@pytest.mark.asyncio
class TestCollectionSweep:
    """Tests for CollectionService.run_collection_sweep."""

    async def test_successful_renewal_advances_period(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30), failure_count=1)
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        outcome = outcome_for(summary, account.id)
        assert outcome.status == SweepOutcomeStatus.SUCCEEDED
        assert outcome.amount == 300
        assert summary.succeeded == 1

        call = mock_payment_provider.charge.call_args.kwargs
        assert call["idempotency_key"] == f"charge-attempt-{outcome.attempt_id}"
        assert call["customer_id"] == account.processor_customer_id
        assert call["payment_method_id"] == account.processor_payment_method_id
        assert call["amount"] == 300

        updated = await BillingAccountRepository().get(account.id)
        assert updated.renewal_date == day(60)
        assert updated.failure_count == 0
        assert updated.last_billing_attempt_at == day(30)

        attempt = await LedgerService().get_attempt(outcome.attempt_id)
        assert attempt.status == ChargeStatus.SUCCEEDED
        assert attempt.kind == ChargeKind.RENEWAL
        assert attempt.processor_reference == "pi_test_123"
        assert attempt.period_start == day(30)
        assert attempt.period_end == day(60)

    async def test_accounts_not_yet_due_are_ignored(
        self, make_subscriber, mock_payment_provider
    ):
        await make_subscriber(day(31))
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        assert summary.processed == 0
        mock_payment_provider.charge.assert_not_called()

    async def test_permanent_accounts_are_never_charged(
        self, make_account, mock_payment_provider
    ):
        await make_account(
            is_permanent=True,
            is_subscribed=True,
            renewal_date=day(30),
            processor_customer_id="cus_perm",
            processor_payment_method_id="pm_perm",
        )
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        assert summary.processed == 0
        mock_payment_provider.charge.assert_not_called()

    async def test_three_declines_terminate_and_restrict_workspace(
        self, make_subscriber, make_workspace, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        workspace = await make_workspace(account)
        mock_payment_provider.charge.return_value = DECLINED
        service = CollectionService()
        repo = BillingAccountRepository()

        first = outcome_for(await service.run_collection_sweep(now=day(30)), account.id)
        assert first.status == SweepOutcomeStatus.FAILED
        assert first.failure_count == 1
        assert (await repo.get(account.id)).is_subscribed

        second = outcome_for(await service.run_collection_sweep(now=day(31)), account.id)
        assert second.status == SweepOutcomeStatus.FAILED
        assert second.failure_count == 2

        third = outcome_for(await service.run_collection_sweep(now=day(32)), account.id)
        assert third.status == SweepOutcomeStatus.TERMINATED
        assert third.failure_count == 3
        assert len(third.cascade) == 1
        assert third.cascade[0].action == CascadeActionType.WORKSPACE_RESTRICTED
        assert third.cascade[0].restricted_until == day(62)

        terminated = await repo.get(account.id)
        assert terminated.is_subscribed is False
        assert terminated.terminated_at == day(32)
        assert terminated.subscription_end_date == day(32)
        assert terminated.cascade_pending is False
        # Renewal date never advances on failure
        assert terminated.renewal_date == day(30)

        history = await LedgerService().get_history(account.id)
        assert len(history) == 3
        assert all(a.status == ChargeStatus.FAILED for a in history)
        assert all(a.period_start == day(30) for a in history)

        stored = await WorkspaceRepository().get(workspace.id)
        assert stored.restricted_until == day(62)

        events = await AuditService().list_workspace_events(workspace.id)
        assert len(events) == 1
        assert events[0].message == (
            "Workspace set to read-only due to payment failure. Expires 2026-05-02."
        )

        # Terminated accounts drop out of later sweeps
        later = await service.run_collection_sweep(now=day(33))
        assert later.processed == 0
        assert mock_payment_provider.charge.call_count == 3

    async def test_success_after_decline_resets_counter(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        mock_payment_provider.charge.side_effect = [
            DECLINED,
            ChargeResult(success=True, reference="pi_retry"),
        ]
        service = CollectionService()

        await service.run_collection_sweep(now=day(30))
        summary = await service.run_collection_sweep(now=day(31))

        assert outcome_for(summary, account.id).status == SweepOutcomeStatus.SUCCEEDED
        updated = await BillingAccountRepository().get(account.id)
        assert updated.failure_count == 0
        # The paid period still starts at the missed renewal date
        assert updated.renewal_date == day(60)

    async def test_same_day_rerun_is_skipped(self, make_subscriber, mock_payment_provider):
        account = await make_subscriber(day(30))
        mock_payment_provider.charge.return_value = DECLINED
        service = CollectionService()

        await service.run_collection_sweep(now=day(30))
        rerun = await service.run_collection_sweep(now=day(30) + timedelta(hours=2))

        assert outcome_for(rerun, account.id).status == SweepOutcomeStatus.SKIPPED
        assert mock_payment_provider.charge.call_count == 1
        assert (await BillingAccountRepository().get(account.id)).failure_count == 1

    async def test_live_attempt_for_period_is_skipped(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        quote = ChargeCalculator().calculate(0)
        await LedgerService().record_pending(
            account.id,
            quote,
            period_start=day(30),
            period_end=day(60),
            kind=ChargeKind.RENEWAL,
            now=day(30),
        )
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        assert outcome_for(summary, account.id).status == SweepOutcomeStatus.SKIPPED
        mock_payment_provider.charge.assert_not_called()
        assert len(await LedgerService().get_history(account.id)) == 1

    async def test_charge_includes_storage_packs_for_usage(
        self, make_subscriber, make_workspace, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        await make_workspace(account, stored_bytes=15 * GIGABYTE)
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        outcome = outcome_for(summary, account.id)
        assert outcome.amount == 600
        assert mock_payment_provider.charge.call_args.kwargs["amount"] == 600
        attempt = await LedgerService().get_attempt(outcome.attempt_id)
        assert attempt.storage_packs == 3
        assert attempt.description == "Monthly Subscription + 3 storage packs"

    async def test_missing_payment_method_counts_failure(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30), processor_payment_method_id=None)
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        outcome = outcome_for(summary, account.id)
        assert outcome.status == SweepOutcomeStatus.FAILED
        assert outcome.failure_count == 1
        mock_payment_provider.charge.assert_not_called()
        assert await LedgerService().get_history(account.id) == []

    async def test_scheduled_cancellation_ends_without_charge(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30), subscription_end_date=day(30))
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        assert outcome_for(summary, account.id).status == SweepOutcomeStatus.CANCELLED
        mock_payment_provider.charge.assert_not_called()
        updated = await BillingAccountRepository().get(account.id)
        assert updated.is_subscribed is False
        assert updated.terminated_at is None

    async def test_error_on_one_account_does_not_stop_sweep(
        self, make_subscriber, mock_payment_provider
    ):
        broken = await make_subscriber(day(29))
        healthy = await make_subscriber(day(30))
        mock_payment_provider.charge.side_effect = [
            RuntimeError("connection reset"),
            ChargeResult(success=True, reference="pi_ok"),
        ]
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        assert summary.processed == 2
        assert summary.errors == 1
        assert summary.succeeded == 1
        assert outcome_for(summary, broken.id).status == SweepOutcomeStatus.ERROR
        assert "connection reset" in outcome_for(summary, broken.id).error
        assert outcome_for(summary, healthy.id).status == SweepOutcomeStatus.SUCCEEDED


@pytest.mark.asyncio
class TestReconciliation:
    """Tests for transient failures and CollectionService.reconcile_pending."""

    async def test_transient_error_leaves_attempt_pending_and_counts(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        mock_payment_provider.charge.side_effect = ProcessorTransient("timed out")
        service = CollectionService()

        summary = await service.run_collection_sweep(now=day(30))

        outcome = outcome_for(summary, account.id)
        assert outcome.status == SweepOutcomeStatus.FAILED
        assert outcome.failure_count == 1

        attempt = await LedgerService().get_attempt(outcome.attempt_id)
        assert attempt.status == ChargeStatus.PENDING
        assert attempt.failure_counted is True

    async def test_reconcile_settles_late_success(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        mock_payment_provider.charge.side_effect = ProcessorTransient("timed out")
        service = CollectionService()
        sweep = await service.run_collection_sweep(now=day(30))
        attempt_id = outcome_for(sweep, account.id).attempt_id

        mock_payment_provider.get_charge_status.return_value = ChargeResult(
            success=True, reference="pi_late"
        )
        result = await service.reconcile_pending(now=day(30) + timedelta(minutes=20))

        assert result.checked == 1
        assert result.succeeded == 1
        mock_payment_provider.get_charge_status.assert_called_once_with(
            f"charge-attempt-{attempt_id}"
        )

        attempt = await LedgerService().get_attempt(attempt_id)
        assert attempt.status == ChargeStatus.SUCCEEDED
        assert attempt.processor_reference == "pi_late"

        updated = await BillingAccountRepository().get(account.id)
        assert updated.renewal_date == day(60)
        assert updated.failure_count == 0

    async def test_reconcile_unknown_charge_fails_without_double_count(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        mock_payment_provider.charge.side_effect = ProcessorTransient("timed out")
        service = CollectionService()
        sweep = await service.run_collection_sweep(now=day(30))
        attempt_id = outcome_for(sweep, account.id).attempt_id

        result = await service.reconcile_pending(now=day(30) + timedelta(minutes=20))

        assert result.failed == 1
        attempt = await LedgerService().get_attempt(attempt_id)
        assert attempt.status == ChargeStatus.FAILED
        assert (await BillingAccountRepository().get(account.id)).failure_count == 1

    async def test_reconcile_counts_uncounted_renewal_failure(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        ledger = LedgerService()
        attempt = await ledger.record_pending(
            account.id,
            ChargeCalculator().calculate(0),
            period_start=day(30),
            period_end=day(60),
            kind=ChargeKind.RENEWAL,
            now=day(30),
        )
        mock_payment_provider.get_charge_status.return_value = DECLINED
        service = CollectionService()

        result = await service.reconcile_pending(now=day(30) + timedelta(hours=1))

        assert result.failed == 1
        stored = await ledger.get_attempt(attempt.id)
        assert stored.status == ChargeStatus.FAILED
        assert stored.failure_reason == "Your card was declined."
        assert (await BillingAccountRepository().get(account.id)).failure_count == 1

    async def test_recent_pending_attempts_are_left_alone(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        await LedgerService().record_pending(
            account.id,
            ChargeCalculator().calculate(0),
            period_start=day(30),
            period_end=day(60),
            kind=ChargeKind.RENEWAL,
            now=day(30),
        )
        service = CollectionService()

        result = await service.reconcile_pending(now=day(30) + timedelta(minutes=5))

        assert result.checked == 0
        mock_payment_provider.get_charge_status.assert_not_called()

    async def test_in_flight_charge_stays_pending(
        self, make_subscriber, mock_payment_provider
    ):
        account = await make_subscriber(day(30))
        ledger = LedgerService()
        attempt = await ledger.record_pending(
            account.id,
            ChargeCalculator().calculate(0),
            period_start=day(30),
            period_end=day(60),
            kind=ChargeKind.RENEWAL,
            now=day(30),
        )
        mock_payment_provider.get_charge_status.side_effect = ProcessorTransient(
            "Charge pi_1 is still processing"
        )
        service = CollectionService()

        result = await service.reconcile_pending(now=day(31))

        assert result.still_pending == 1
        assert (await ledger.get_attempt(attempt.id)).status == ChargeStatus.PENDING


@pytest.mark.asyncio
class TestPendingCascades:
    """Tests for CollectionService.retry_pending_cascades."""

    async def test_resubscribed_account_is_not_cascaded(
        self, make_subscriber, make_workspace
    ):
        account = await make_subscriber(day(40), cascade_pending=True)
        workspace = await make_workspace(account)
        service = CollectionService()

        summary = await service.retry_pending_cascades(now=day(41))

        assert summary.checked == 1
        assert summary.actions == []
        assert (await BillingAccountRepository().get(account.id)).cascade_pending is False
        assert (await WorkspaceRepository().get(workspace.id)).restricted_until is None

    async def test_terminated_account_is_cascaded(self, make_subscriber, make_workspace):
        account = await make_subscriber(
            day(30), is_subscribed=False, terminated_at=day(32), cascade_pending=True
        )
        workspace = await make_workspace(account)
        service = CollectionService()

        summary = await service.retry_pending_cascades(now=day(35))

        assert summary.completed == 1
        assert summary.actions[0].workspace_id == workspace.id
        assert (await WorkspaceRepository().get(workspace.id)).restricted_until == day(65)
