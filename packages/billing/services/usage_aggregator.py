"""
Usage aggregation: metered bytes attributable to a billing account.
"""

from datetime import datetime
from typing import Optional

from common.core.clock import utcnow
from common.core.otel_axiom_exporter import trace_span
from packages.billing.models.domain.usage import UsageSnapshot
from packages.billing.repositories.usage_repository import UsageRepository


class UsageAggregator:
    """Recomputed on every call; never cached between billing decisions."""

    def __init__(self):
        self.usage_repo = UsageRepository()

    @trace_span
    async def sum_metered_bytes(self, account_id: int) -> int:
        return await self.usage_repo.sum_metered_bytes(account_id)

    @trace_span
    async def snapshot(
        self, account_id: int, now: Optional[datetime] = None
    ) -> UsageSnapshot:
        return UsageSnapshot(
            account_id=account_id,
            used_bytes=await self.usage_repo.sum_metered_bytes(account_id),
            measured_at=now or utcnow(),
        )
