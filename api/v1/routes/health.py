from fastapi import APIRouter, Request
from sqlalchemy import text

from common.db.scoped import get_session
from common.core.otel_axiom_exporter import get_logger, log_span_event
from common.providers.rate_limiter.limiter import limiter
from packages.billing.providers.payment.factory import get_payment_provider

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def health_check(request: Request):
    # No rate limiting or logging - k8s probes hit this every 5-10s
    return {"status": "healthy", "service": "billing-engine"}


@router.get("/db")
@limiter.limit("100/minute")
async def db_check(request: Request):
    try:
        async with get_session(readonly=True) as db:
            result = await db.execute(text("SELECT 1"))
            result.scalar()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "disconnected"}


@router.get("/payments")
@limiter.limit("10/minute")
async def payments_check(request: Request):
    payment = get_payment_provider()
    healthy = await payment.health_check()
    log_span_event("payment_health_check", {"healthy": healthy})
    return {
        "status": "healthy" if healthy else "unhealthy",
        "payments": "reachable" if healthy else "unreachable",
    }
