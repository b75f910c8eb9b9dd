"""
Collection: charges due accounts, settles ledger entries and drives the
failure counter.

Ordering for every charge:
1. ledger row written `pending`
2. processor called with the attempt's idempotency key
3. ledger row and account updated together in one transaction

A crash between 1 and 3 leaves a pending row that `reconcile_pending` later
resolves by asking the processor what happened under that key.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger, set_span_attributes, trace_span
from common.db.scoped import transaction
from packages.billing.exceptions import LedgerConflict, ProcessorTransient
from packages.billing.models.domain.billing_account import (
    BillingAccount,
    BillingAccountUpdateModel,
)
from packages.billing.models.domain.charge_attempt import ChargeAttempt
from packages.billing.models.domain.enums import (
    ChargeKind,
    ChargeStatus,
    SweepOutcomeStatus,
)
from packages.billing.models.domain.payment import ChargeResult
from packages.billing.models.domain.sweep import (
    AccountOutcome,
    CascadeRetrySummary,
    ReconciliationSummary,
    SweepSummary,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.services.cascade_service import CascadeService
from packages.billing.services.charge_calculator import ChargeCalculator
from packages.billing.services.due_date_resolver import (
    DueDateResolver,
    classify_account,
)
from packages.billing.services.ledger_service import LedgerService
from packages.billing.services.usage_aggregator import UsageAggregator

logger = get_logger(__name__)

# Grace on top of the provider's own timeout before the call is abandoned
_CHARGE_TIMEOUT_GRACE_SECONDS = 5.0


class CollectionService:
    """Charge executor, nightly collection sweep and pending reconciliation."""

    def __init__(self):
        self.account_repo = BillingAccountRepository()
        self.ledger = LedgerService()
        self.usage = UsageAggregator()
        self.calculator = ChargeCalculator()
        self.resolver = DueDateResolver()
        self.cascade = CascadeService()
        self.payment = get_payment_provider()

    # ------------------------------------------------------------------
    # Charging primitives shared with user-initiated payments
    # ------------------------------------------------------------------

    @trace_span
    async def execute_charge(
        self, account: BillingAccount, attempt: ChargeAttempt
    ) -> ChargeResult:
        """
        Call the processor for a pending attempt.

        Raises:
            ProcessorTransient: timeout or network failure, attempt stays pending
        """
        set_span_attributes(
            {
                "billing.account_id": account.id,
                "billing.attempt_id": attempt.id,
                "billing.charge_kind": attempt.kind.value,
            }
        )
        timeout = settings.payment_processor_timeout_seconds + _CHARGE_TIMEOUT_GRACE_SECONDS
        try:
            return await asyncio.wait_for(
                self.payment.charge(
                    customer_id=account.processor_customer_id,
                    payment_method_id=account.processor_payment_method_id,
                    amount=attempt.amount,
                    currency=attempt.currency,
                    idempotency_key=attempt.idempotency_key,
                    description=attempt.description,
                    metadata={
                        "account_id": str(account.id),
                        "attempt_id": str(attempt.id),
                        "kind": attempt.kind.value,
                    },
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProcessorTransient(
                f"Payment processor did not respond within {timeout}s"
            ) from e

    def _success_changes(
        self, attempt: ChargeAttempt, account: BillingAccount
    ) -> Optional[BillingAccountUpdateModel]:
        """Account changes for a paid attempt; None when a later payment already covers it."""
        if attempt.kind != ChargeKind.FIRST:
            # The renewal date never moves backwards
            renewal_date = max(attempt.period_end, account.renewal_date or attempt.period_end)
            return BillingAccountUpdateModel(renewal_date=renewal_date, failure_count=0)
        if (
            account.is_subscribed
            and account.renewal_date is not None
            and account.renewal_date >= attempt.period_end
        ):
            return None
        return BillingAccountUpdateModel(
            is_subscribed=True,
            subscription_start_date=attempt.period_start,
            renewal_date=attempt.period_end,
            subscription_end_date=None,
            terminated_at=None,
            failure_count=0,
            cascade_pending=False,
            storage_packs=attempt.storage_packs,
            storage_limit_gb=self.calculator.storage_limit_gb(attempt.storage_packs),
        )

    @trace_span
    async def settle_success(
        self, attempt: ChargeAttempt, reference: Optional[str], now: datetime
    ) -> BillingAccount:
        """Mark the attempt succeeded and advance the account, atomically."""
        async with transaction():
            account = await self.account_repo.get_for_update(attempt.account_id)
            await self.ledger.mark_succeeded(attempt.id, reference, now)
            changes = self._success_changes(attempt, account)
            if changes is not None:
                account = await self.account_repo.update(attempt.account_id, changes)

        if changes is None:
            logger.warning(
                f"Charge {attempt.id} for account {attempt.account_id} is covered by a "
                "later payment and needs a refund at the processor",
                extra={
                    "attempt_id": attempt.id,
                    "account_id": attempt.account_id,
                    "processor_reference": reference,
                },
            )
            return account

        logger.info(
            f"Settled {attempt.kind.value} charge {attempt.id} for account {attempt.account_id}",
            extra={
                "attempt_id": attempt.id,
                "account_id": attempt.account_id,
                "renewal_date": attempt.period_end.isoformat(),
            },
        )
        return account

    @trace_span
    async def register_failure(
        self, account_id: int, reason: str, now: datetime
    ) -> AccountOutcome:
        """
        Count one failed renewal.

        Reaching the threshold terminates the account and runs the cascade.
        The `terminated_at` check under the row lock makes that happen once.
        """
        terminated = False
        async with transaction():
            account = await self.account_repo.get_for_update(account_id)
            failure_count = account.failure_count + 1
            if (
                failure_count >= settings.billing_failure_threshold
                and account.terminated_at is None
            ):
                terminated = True
                changes = BillingAccountUpdateModel(
                    failure_count=failure_count,
                    is_subscribed=False,
                    terminated_at=now,
                    subscription_end_date=now,
                    cascade_pending=True,
                )
            else:
                changes = BillingAccountUpdateModel(failure_count=failure_count)
            await self.account_repo.update(account_id, changes)

        logger.warning(
            f"Payment failure {failure_count}/{settings.billing_failure_threshold} "
            f"for account {account_id}: {reason}",
            extra={
                "account_id": account_id,
                "failure_count": failure_count,
                "terminated": terminated,
            },
        )

        if not terminated:
            return AccountOutcome(
                account_id=account_id,
                status=SweepOutcomeStatus.FAILED,
                failure_count=failure_count,
                error=reason,
            )

        cascade = await self.cascade.enforce(account_id, now)
        return AccountOutcome(
            account_id=account_id,
            status=SweepOutcomeStatus.TERMINATED,
            failure_count=failure_count,
            error=reason,
            cascade=cascade,
        )

    @trace_span
    async def retry_pending_cascades(
        self, now: Optional[datetime] = None
    ) -> CascadeRetrySummary:
        """Run the cascade again for terminated accounts it did not finish for."""
        now = now or utcnow()
        summary = CascadeRetrySummary()

        for account in await self.account_repo.list_cascade_pending():
            summary.checked += 1
            if account.terminated_at is None:
                # Resubscribed since termination
                await self.account_repo.update(
                    account.id, BillingAccountUpdateModel(cascade_pending=False)
                )
                continue
            summary.actions.extend(await self.cascade.enforce(account.id, now))
            refreshed = await self.account_repo.get(account.id)
            if not refreshed.cascade_pending:
                summary.completed += 1

        if summary.checked:
            logger.info(
                f"Retried cascade for {summary.checked} terminated account(s)",
                extra={"checked": summary.checked, "completed": summary.completed},
            )
        return summary

    # ------------------------------------------------------------------
    # Nightly collection
    # ------------------------------------------------------------------

    @trace_span
    async def run_collection_sweep(self, now: Optional[datetime] = None) -> SweepSummary:
        """
        Charge every account whose due date has arrived.

        Accounts are processed one at a time; a failure on one account is
        recorded in the summary and never stops the sweep.
        """
        now = now or utcnow()
        summary = SweepSummary()

        accounts = await self.account_repo.list_renewals_due(now)
        logger.info(
            f"Collection sweep: {len(accounts)} candidate account(s)",
            extra={"now": now.isoformat(), "candidates": len(accounts)},
        )

        for account in accounts:
            try:
                outcome = await self.process_account(account.id, now)
            except Exception as e:
                logger.error(
                    f"Collection failed for account {account.id}: {e}",
                    extra={"account_id": account.id},
                    exc_info=True,
                )
                outcome = AccountOutcome(
                    account_id=account.id,
                    status=SweepOutcomeStatus.ERROR,
                    error=str(e),
                )
            summary.add(outcome)

        logger.info(
            f"Collection sweep complete: {summary.succeeded} succeeded, "
            f"{summary.failed} failed, {summary.errors} errors",
            extra={
                "processed": summary.processed,
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "errors": summary.errors,
            },
        )
        return summary

    @trace_span
    async def process_account(self, account_id: int, now: datetime) -> AccountOutcome:
        """Collect one renewal for one account, re-reading its current state."""
        set_span_attributes({"billing.account_id": account_id})
        account = await self.account_repo.get(account_id)

        if not classify_account(account, now).is_billable() or not account.is_subscribed:
            return self._skipped(account_id, "Account is not billable")

        due_date = self.resolver.resolve_due_date(account, now)
        if due_date is None or due_date > now:
            return self._skipped(account_id, "Account is not due")

        if (
            account.last_billing_attempt_at is not None
            and account.last_billing_attempt_at.date() == now.date()
        ):
            return self._skipped(account_id, "Already attempted today")

        if (
            account.subscription_end_date is not None
            and account.subscription_end_date <= now
        ):
            return await self._end_subscription(account)

        if not account.has_payment_method():
            await self.account_repo.update(
                account_id, BillingAccountUpdateModel(last_billing_attempt_at=now)
            )
            return await self.register_failure(
                account_id, "No payment method on file", now
            )

        period_start = account.renewal_date
        period_end = period_start + timedelta(days=settings.billing_cycle_days)

        usage = await self.usage.snapshot(account_id, now)
        quote = self.calculator.calculate(
            usage.used_bytes, purchased_packs=account.storage_packs
        )

        try:
            attempt = await self.ledger.record_pending(
                account_id,
                quote,
                period_start=period_start,
                period_end=period_end,
                kind=ChargeKind.RENEWAL,
                now=now,
            )
        except LedgerConflict:
            return self._skipped(account_id, "Charge already in flight for this period")

        await self.account_repo.update(
            account_id, BillingAccountUpdateModel(last_billing_attempt_at=now)
        )

        try:
            result = await self.execute_charge(account, attempt)
        except ProcessorTransient as e:
            # Outcome unknown: count the failure now, reconciliation settles the row
            await self.ledger.mark_failure_counted(attempt.id, e.message)
            outcome = await self.register_failure(account_id, e.message, now)
            outcome.attempt_id = attempt.id
            outcome.amount = attempt.amount
            return outcome

        if result.success:
            updated = await self.settle_success(attempt, result.reference, now)
            return AccountOutcome(
                account_id=account_id,
                status=SweepOutcomeStatus.SUCCEEDED,
                attempt_id=attempt.id,
                amount=attempt.amount,
                failure_count=updated.failure_count,
            )

        reason = result.failure_reason or "Payment declined"
        await self.ledger.mark_failed(attempt.id, reason, now)
        outcome = await self.register_failure(account_id, reason, now)
        outcome.attempt_id = attempt.id
        outcome.amount = attempt.amount
        return outcome

    async def _end_subscription(self, account: BillingAccount) -> AccountOutcome:
        """Scheduled cancellation reached: stop renewing, no charge."""
        await self.account_repo.update(
            account.id, BillingAccountUpdateModel(is_subscribed=False)
        )
        logger.info(
            f"Subscription for account {account.id} ended as scheduled",
            extra={
                "account_id": account.id,
                "subscription_end_date": account.subscription_end_date.isoformat(),
            },
        )
        return AccountOutcome(
            account_id=account.id, status=SweepOutcomeStatus.CANCELLED
        )

    @staticmethod
    def _skipped(account_id: int, reason: str) -> AccountOutcome:
        logger.info(f"Skipping account {account_id}: {reason}")
        return AccountOutcome(
            account_id=account_id, status=SweepOutcomeStatus.SKIPPED, error=reason
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    @trace_span
    async def reconcile_pending(
        self, now: Optional[datetime] = None
    ) -> ReconciliationSummary:
        """
        Resolve pending attempts older than the reconciliation timeout.

        The processor is asked for the outcome under each attempt's
        idempotency key. An attempt the processor never saw is failed.
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.pending_reconciliation_timeout_minutes)
        summary = ReconciliationSummary()

        for attempt in await self.ledger.list_stale_pending(cutoff):
            summary.checked += 1
            try:
                status = await self.reconcile_attempt(attempt, now)
            except Exception as e:
                logger.error(
                    f"Could not reconcile attempt {attempt.id}: {e}",
                    extra={"attempt_id": attempt.id},
                    exc_info=True,
                )
                status = ChargeStatus.PENDING

            if status == ChargeStatus.SUCCEEDED:
                summary.succeeded += 1
            elif status == ChargeStatus.FAILED:
                summary.failed += 1
            else:
                summary.still_pending += 1

        if summary.checked:
            logger.info(
                f"Reconciled {summary.checked} pending attempt(s)",
                extra=summary.model_dump(),
            )
        return summary

    @trace_span
    async def reconcile_attempt(self, attempt: ChargeAttempt, now: datetime) -> ChargeStatus:
        """
        Settle one pending attempt from the processor's record of its idempotency key.

        Returns the attempt's status afterwards; PENDING while the outcome is unknown.
        """
        try:
            result = await self.payment.get_charge_status(attempt.idempotency_key)
        except ProcessorTransient as e:
            logger.info(
                f"Attempt {attempt.id} still unresolved: {e.message}",
                extra={"attempt_id": attempt.id},
            )
            return ChargeStatus.PENDING

        if result is not None and result.success:
            await self.settle_success(attempt, result.reference, now)
            return ChargeStatus.SUCCEEDED

        await self._settle_failure(attempt, result, now)
        return ChargeStatus.FAILED

    async def _settle_failure(
        self, attempt: ChargeAttempt, result: Optional[ChargeResult], now: datetime
    ) -> None:
        if result is None:
            reason = "Charge was never received by the payment processor"
        else:
            reason = result.failure_reason or "Payment declined"

        await self.ledger.mark_failed(attempt.id, reason, now)

        if attempt.kind == ChargeKind.RENEWAL and not attempt.failure_counted:
            await self.register_failure(attempt.account_id, reason, now)

