"""
Internal billing routes, called by the scheduler with an API key.
"""

from fastapi import APIRouter, Depends

from common.core.otel_axiom_exporter import trace_span
from packages.billing.models.domain.sweep import NightlySweepSummary
from packages.billing.services.billing_sweep_service import BillingSweepService

router = APIRouter()


def get_billing_sweep_service() -> BillingSweepService:
    return BillingSweepService()


@router.post("/sweep", response_model=NightlySweepSummary)
@trace_span
async def run_nightly_sweep(
    sweep_service: BillingSweepService = Depends(get_billing_sweep_service),
):
    """Run the nightly billing sweep now. Skipped if one is already running."""
    return await sweep_service.run_nightly_sweep()
