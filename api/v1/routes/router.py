from fastapi import APIRouter, Depends

from api.v1.routes import (
    health,
)
from packages.auth.dependencies import require_internal_api_key
from packages.billing.routes import billing, internal

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Scheduler-triggered billing jobs (internal API key)
api_router.include_router(
    internal.router,
    prefix="/billing/internal",
    tags=["billing-internal"],
    dependencies=[Depends(require_internal_api_key)],
)

# Billing routes (auth enforced per endpoint; pricing is public)
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
