"""
Billing API routes.

Protected endpoints for subscription, payment method and invoice management.
Every endpoint acts on the authenticated account only.
"""

from fastapi import APIRouter, Depends, Query

from common.core.clock import utcnow
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.dependencies import get_current_account
from packages.auth.models.domain.authenticated_account import AuthenticatedAccount
from packages.billing.models.domain.account_status import AccountStatus
from packages.billing.models.domain.billing_account import BillingAccount
from packages.billing.models.domain.invoice import Invoice, Pricing
from packages.billing.models.schemas.billing import (
    BillingHistoryItem,
    BillingHistoryResponse,
    PaymentMethodResponse,
    SavePaymentMethodRequest,
    SetupIntentResponse,
    SubscribeRequest,
    SubscriptionResponse,
    UpdateStoragePacksRequest,
)
from packages.billing.services.due_date_resolver import classify_account
from packages.billing.services.subscription_service import SubscriptionService

router = APIRouter()
logger = get_logger(__name__)


def get_subscription_service() -> SubscriptionService:
    return SubscriptionService()


def _subscription_response(account: BillingAccount) -> SubscriptionResponse:
    now = utcnow()
    return SubscriptionResponse.from_account(
        account, classify_account(account, now), now
    )


# ============================================================================
# Pricing and Status
# ============================================================================


@router.get("/pricing", response_model=Pricing)
@trace_span
async def get_pricing(
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Public price list: base fee, storage pack price and allowances."""
    return subscription_service.get_pricing()


@router.get("/status", response_model=AccountStatus)
@trace_span
async def get_account_status(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Billing state, subscription dates and storage usage for the account."""
    return await subscription_service.get_account_status(current_account.account_id)


@router.get("/invoice", response_model=Invoice)
@trace_span
async def get_invoice(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Preview the next charge. Has no side effects."""
    return await subscription_service.compute_invoice(current_account.account_id)


@router.get("/history", response_model=BillingHistoryResponse)
@trace_span
async def get_billing_history(
    limit: int = Query(12, ge=1, le=100),
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Ledger entries for the account, newest first."""
    attempts = await subscription_service.get_billing_history(
        current_account.account_id, limit
    )
    return BillingHistoryResponse(
        items=[BillingHistoryItem.model_validate(a) for a in attempts]
    )


# ============================================================================
# Payment Methods
# ============================================================================


@router.post("/setup-intent", response_model=SetupIntentResponse)
@trace_span
async def create_setup_intent(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    intent = await subscription_service.create_setup_intent(current_account.account_id)
    return SetupIntentResponse(
        client_secret=intent.client_secret, customer_id=intent.customer_id
    )


@router.post("/payment-method", response_model=PaymentMethodResponse)
@trace_span
async def save_payment_method(
    request: SavePaymentMethodRequest,
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Attach a confirmed card and make it the default for off-session charges."""
    account = await subscription_service.save_payment_method(
        current_account.account_id, request.payment_method_id
    )
    summary = await subscription_service.get_payment_method(account.id)
    return PaymentMethodResponse(
        has_payment_method=account.has_payment_method(), payment_method=summary
    )


@router.get("/payment-method", response_model=PaymentMethodResponse)
@trace_span
async def get_payment_method(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    summary = await subscription_service.get_payment_method(current_account.account_id)
    return PaymentMethodResponse(
        has_payment_method=summary is not None, payment_method=summary
    )


# ============================================================================
# Subscription Lifecycle
# ============================================================================


@router.post("/subscribe", response_model=SubscriptionResponse)
@trace_span
async def subscribe(
    request: SubscribeRequest,
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Subscribe and pay the first period immediately."""
    account = await subscription_service.start_subscription(
        current_account.account_id, request.storage_packs
    )
    return _subscription_response(account)


@router.put("/storage-packs", response_model=SubscriptionResponse)
@trace_span
async def update_storage_packs(
    request: UpdateStoragePacksRequest,
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    account = await subscription_service.update_storage_packs(
        current_account.account_id, request.storage_packs
    )
    return _subscription_response(account)


@router.post("/cancel", response_model=SubscriptionResponse)
@trace_span
async def cancel_subscription(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Schedule cancellation at the end of the current period."""
    account = await subscription_service.cancel_subscription(current_account.account_id)
    return _subscription_response(account)


@router.post("/reactivate", response_model=SubscriptionResponse)
@trace_span
async def reactivate_subscription(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    account = await subscription_service.reactivate_subscription(
        current_account.account_id
    )
    return _subscription_response(account)


@router.post("/pay-now", response_model=SubscriptionResponse)
@trace_span
async def pay_now(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Pay the upcoming charge early (trial accounts, or within the pay-early window)."""
    account = await subscription_service.pay_now(current_account.account_id)
    logger.info(
        f"Account {account.id} paid early",
        extra={"account_id": account.id, "renewal_date": str(account.renewal_date)},
    )
    return _subscription_response(account)
