"""
Service for managing subscriptions.

User-initiated operations: pricing and invoice previews, payment method
setup, starting a subscription, changing storage packs, cancelling,
reactivating and paying early.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.constants import GIGABYTE
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly
from packages.billing.exceptions import (
    AccountNotFound,
    AlreadyScheduledForCancellation,
    LedgerConflict,
    NoPaymentMethod,
    NotEligibleToReactivate,
    ProcessorDeclined,
    ValidationError,
)
from packages.billing.models.domain.account_status import AccountStatus
from packages.billing.models.domain.billing_account import (
    BillingAccount,
    BillingAccountCreateModel,
    BillingAccountUpdateModel,
)
from packages.billing.models.domain.charge_attempt import ChargeAttempt
from packages.billing.models.domain.enums import AccountState, ChargeKind, ChargeStatus
from packages.billing.models.domain.invoice import Invoice, Pricing
from packages.billing.models.domain.payment import PaymentMethodSummary, SetupIntent
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.services.charge_calculator import ChargeCalculator
from packages.billing.services.collection_service import CollectionService
from packages.billing.services.due_date_resolver import (
    DueDateResolver,
    classify_account,
)
from packages.billing.services.ledger_service import LedgerService
from packages.billing.services.usage_aggregator import UsageAggregator

logger = get_logger(__name__)


class SubscriptionService:
    """Service for subscription management."""

    def __init__(self):
        self.account_repo = BillingAccountRepository()
        self.ledger = LedgerService()
        self.usage = UsageAggregator()
        self.calculator = ChargeCalculator()
        self.resolver = DueDateResolver()
        self.collection = CollectionService()
        self.payment = get_payment_provider()

    async def _get_account(self, account_id: int) -> BillingAccount:
        account = await self.account_repo.get(account_id)
        if not account:
            raise AccountNotFound(f"Billing account {account_id} not found")
        return account

    @staticmethod
    def _validate_pack_count(pack_count: int) -> None:
        if not isinstance(pack_count, int) or isinstance(pack_count, bool):
            raise ValidationError("Storage pack count must be a whole number")
        if pack_count < 0:
            raise ValidationError("Storage pack count cannot be negative")

    # ------------------------------------------------------------------
    # Accounts and read views
    # ------------------------------------------------------------------

    @trace_span
    async def create_account(self, account_data: BillingAccountCreateModel) -> BillingAccount:
        """Register a billing account; its trial starts at creation."""
        if await self.account_repo.get_by_email(account_data.email):
            raise ValidationError(f"An account for {account_data.email} already exists")

        if account_data.created_at is None:
            account_data = account_data.model_copy(update={"created_at": utcnow()})

        account = await self.account_repo.create(account_data)
        logger.info(
            f"Created billing account {account.id}",
            extra={"account_id": account.id, "is_permanent": account.is_permanent},
        )
        return account

    @trace_span
    async def get_account(self, account_id: int) -> BillingAccount:
        return await self._get_account(account_id)

    def get_pricing(self) -> Pricing:
        return Pricing(
            base_fee=self.calculator.base_fee,
            pack_fee=self.calculator.pack_fee,
            pack_size_gb=self.calculator.pack_size_gb,
            free_allowance_gb=self.calculator.free_allowance_gb,
            currency=self.calculator.currency,
            trial_days=settings.billing_trial_days,
            billing_cycle_days=settings.billing_cycle_days,
        )

    @trace_span
    @readonly
    async def compute_invoice(
        self, account_id: int, now: Optional[datetime] = None
    ) -> Invoice:
        """
        Preview the next charge. No side effects.

        Permanent accounts report a zero invoice with no due date.
        """
        now = now or utcnow()
        account = await self._get_account(account_id)
        state = classify_account(account, now)
        usage = await self.usage.snapshot(account_id, now)

        if state == AccountState.PERMANENT:
            return Invoice(
                account_id=account_id,
                state=state,
                base_amount=0,
                usage_packs=0,
                usage_charge=0,
                total=0,
                currency=self.calculator.currency,
                usage_bytes=usage.used_bytes,
            )

        quote = self.calculator.calculate(
            usage.used_bytes, purchased_packs=account.storage_packs
        )
        return Invoice(
            account_id=account_id,
            state=state,
            base_amount=quote.base_amount,
            usage_packs=quote.usage_packs,
            usage_charge=quote.usage_charge,
            total=quote.total,
            currency=quote.currency,
            usage_bytes=usage.used_bytes,
            due_date=self.resolver.resolve_due_date(account, now),
            days_until_due=self.resolver.days_until_due(account, now),
            can_pay_now=self.resolver.can_pay_now(account, now),
        )

    @trace_span
    @readonly
    async def get_account_status(
        self, account_id: int, now: Optional[datetime] = None
    ) -> AccountStatus:
        now = now or utcnow()
        account = await self._get_account(account_id)
        used_bytes = await self.usage.sum_metered_bytes(account_id)

        return AccountStatus(
            account_id=account_id,
            state=classify_account(account, now),
            is_subscribed=account.is_subscribed,
            failure_count=account.failure_count,
            trial_end=self.resolver.trial_end(account),
            renewal_date=account.renewal_date,
            subscription_end_date=account.subscription_end_date,
            cancel_at_period_end=account.has_scheduled_cancellation(now),
            storage_used_bytes=used_bytes,
            storage_used_gb=round(used_bytes / GIGABYTE, 2),
            storage_limit_gb=account.storage_limit_gb,
            storage_packs=account.storage_packs,
            has_payment_method=account.has_payment_method(),
        )

    @trace_span
    @readonly
    async def get_billing_history(
        self, account_id: int, limit: Optional[int] = None
    ) -> List[ChargeAttempt]:
        await self._get_account(account_id)
        return await self.ledger.get_history(account_id, limit)

    # ------------------------------------------------------------------
    # Payment methods
    # ------------------------------------------------------------------

    async def _ensure_customer(self, account: BillingAccount) -> str:
        if account.processor_customer_id:
            return account.processor_customer_id

        customer_id = await self.payment.create_customer(
            account.id, account.email, account.display_name
        )
        await self.account_repo.update(
            account.id, BillingAccountUpdateModel(processor_customer_id=customer_id)
        )
        return customer_id

    @trace_span
    async def create_setup_intent(self, account_id: int) -> SetupIntent:
        """Start collecting a card for off-session charges."""
        account = await self._get_account(account_id)
        customer_id = await self._ensure_customer(account)
        return await self.payment.create_setup_intent(customer_id)

    @trace_span
    async def save_payment_method(
        self, account_id: int, payment_method_id: str
    ) -> BillingAccount:
        if not payment_method_id or not payment_method_id.strip():
            raise ValidationError("Payment method id is required")

        account = await self._get_account(account_id)
        customer_id = await self._ensure_customer(account)
        await self.payment.attach_payment_method(customer_id, payment_method_id)

        updated = await self.account_repo.update(
            account_id,
            BillingAccountUpdateModel(processor_payment_method_id=payment_method_id),
        )
        logger.info(
            f"Saved payment method for account {account_id}",
            extra={"account_id": account_id},
        )
        return updated

    @trace_span
    async def get_payment_method(self, account_id: int) -> Optional[PaymentMethodSummary]:
        account = await self._get_account(account_id)
        if not account.processor_payment_method_id:
            return None
        return await self.payment.get_payment_method(account.processor_payment_method_id)

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def _resolve_earlier_attempt(self, account_id: int, now: datetime) -> None:
        """
        Settle a charge of this account that is still pending before taking another.

        A pending attempt younger than the reconciliation timeout may still be
        in flight at the processor, so a new charge is refused until then.

        Raises:
            LedgerConflict: the earlier charge's outcome is still unknown
        """
        pending = await self.ledger.get_pending_attempt(account_id)
        if pending is None:
            return

        cutoff = now - timedelta(minutes=settings.pending_reconciliation_timeout_minutes)
        if (
            pending.created_at > cutoff
            or await self.collection.reconcile_attempt(pending, now) == ChargeStatus.PENDING
        ):
            logger.info(
                f"Refusing new charge for account {account_id}: attempt {pending.id} is pending",
                extra={"account_id": account_id, "attempt_id": pending.id},
            )
            raise LedgerConflict(
                "A previous payment is still being confirmed. Please try again later."
            )

    async def _charge_now(
        self,
        account: BillingAccount,
        kind: ChargeKind,
        period_start: datetime,
        pack_count: int,
        now: datetime,
    ) -> BillingAccount:
        """
        Charge one period immediately and settle it.

        Declines leave the failure counter untouched; only renewals count.

        Raises:
            ProcessorDeclined: the processor refused the charge
            ProcessorTransient: outcome unknown, the attempt stays pending
            LedgerConflict: the period is already paid or in flight
        """
        period_end = period_start + timedelta(days=settings.billing_cycle_days)
        usage = await self.usage.snapshot(account.id, now)
        quote = self.calculator.calculate(usage.used_bytes, purchased_packs=pack_count)

        attempt = await self.ledger.record_pending(
            account.id,
            quote,
            period_start=period_start,
            period_end=period_end,
            kind=kind,
            now=now,
        )
        result = await self.collection.execute_charge(account, attempt)

        if not result.success:
            reason = result.failure_reason or "Payment declined"
            await self.ledger.mark_failed(attempt.id, reason, now)
            raise ProcessorDeclined(reason)

        return await self.collection.settle_success(attempt, result.reference, now)

    @trace_span
    async def start_subscription(
        self, account_id: int, pack_count: int = 0, now: Optional[datetime] = None
    ) -> BillingAccount:
        """
        Subscribe and take the first payment immediately.

        The account only becomes subscribed once the charge has succeeded.
        """
        now = now or utcnow()
        self._validate_pack_count(pack_count)
        await self._resolve_earlier_attempt(account_id, now)
        account = await self._get_account(account_id)

        state = classify_account(account, now)
        if state == AccountState.PERMANENT:
            raise ValidationError("Permanent accounts are never billed")
        if account.is_subscribed:
            raise ValidationError("Account already has an active subscription")
        if not account.has_payment_method():
            raise NoPaymentMethod("Please add a payment method before subscribing")

        logger.info(
            f"Starting subscription for account {account_id} with {pack_count} pack(s)",
            extra={"account_id": account_id, "pack_count": pack_count, "state": state.value},
        )
        return await self._charge_now(account, ChargeKind.FIRST, now, pack_count, now)

    @trace_span
    async def update_storage_packs(
        self, account_id: int, pack_count: int
    ) -> BillingAccount:
        """Change purchased packs; takes effect from the next charge."""
        self._validate_pack_count(pack_count)
        account = await self._get_account(account_id)
        if not account.is_subscribed:
            raise ValidationError("No active subscription to update")

        updated = await self.account_repo.update(
            account_id,
            BillingAccountUpdateModel(
                storage_packs=pack_count,
                storage_limit_gb=self.calculator.storage_limit_gb(pack_count),
            ),
        )
        logger.info(
            f"Account {account_id} storage packs {account.storage_packs} -> {pack_count}",
            extra={"account_id": account_id, "pack_count": pack_count},
        )
        return updated

    @trace_span
    async def cancel_subscription(
        self, account_id: int, now: Optional[datetime] = None
    ) -> BillingAccount:
        """Schedule the subscription to end at the current period's renewal date."""
        now = now or utcnow()
        account = await self._get_account(account_id)

        if classify_account(account, now) == AccountState.PERMANENT:
            raise ValidationError("Permanent accounts cannot be cancelled")
        if not account.is_subscribed:
            raise ValidationError("No active subscription to cancel")
        if account.has_scheduled_cancellation(now):
            raise AlreadyScheduledForCancellation(
                "Subscription is already scheduled for cancellation."
            )

        end_date = max(now, account.renewal_date or now)
        updated = await self.account_repo.update(
            account_id, BillingAccountUpdateModel(subscription_end_date=end_date)
        )
        logger.info(
            f"Subscription for account {account_id} will end {end_date.isoformat()}",
            extra={"account_id": account_id, "end_date": end_date.isoformat()},
        )
        return updated

    @trace_span
    async def reactivate_subscription(
        self, account_id: int, now: Optional[datetime] = None
    ) -> BillingAccount:
        """Undo a scheduled cancellation before it takes effect."""
        now = now or utcnow()
        account = await self._get_account(account_id)

        if not account.is_subscribed or account.subscription_end_date is None:
            raise NotEligibleToReactivate("Subscription is not scheduled for cancellation.")
        if account.subscription_end_date <= now:
            raise NotEligibleToReactivate(
                "Subscription has already ended. Please subscribe again."
            )

        updated = await self.account_repo.update(
            account_id, BillingAccountUpdateModel(subscription_end_date=None)
        )
        logger.info(
            f"Reactivated subscription for account {account_id}",
            extra={"account_id": account_id},
        )
        return updated

    @trace_span
    async def pay_now(
        self, account_id: int, now: Optional[datetime] = None
    ) -> BillingAccount:
        """
        Pay the upcoming charge early.

        Unsubscribed accounts (trial, expired, terminated) subscribe with their
        current packs. Subscribed accounts prepay the period starting at their
        renewal date and only inside the pay-early window.
        """
        now = now or utcnow()
        await self._resolve_earlier_attempt(account_id, now)
        account = await self._get_account(account_id)

        if not self.resolver.can_pay_now(account, now):
            if classify_account(account, now) == AccountState.PERMANENT:
                raise ValidationError("Permanent accounts are never billed")
            raise ValidationError(
                f"Payment is only available within {settings.billing_pay_now_window_days} "
                "days of the due date"
            )

        if not account.is_subscribed:
            return await self.start_subscription(account_id, account.storage_packs, now)

        if not account.has_payment_method():
            raise NoPaymentMethod("Please add a payment method first")

        return await self._charge_now(
            account, ChargeKind.PAY_NOW, account.renewal_date, account.storage_packs, now
        )
