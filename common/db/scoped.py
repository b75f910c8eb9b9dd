"""
Operation-scoped database sessions.

Billing code calls the payment processor between database writes, so sessions
are opened per operation and released immediately instead of being held for
the length of a request or a sweep:

    async with get_session() as session:
        account = await session.get(BillingAccountEntity, account_id)
    # Connection released here

    async with transaction():
        await account_repo.update(account_id, changes)
        await attempt_repo.update(attempt_id, outcome)
    # Commits together, then releases
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.context import bind_session, current_session, is_readonly_forced
from common.db.session import AsyncSessionLocal

logger = get_logger(__name__)


@asynccontextmanager
async def _open_session(readonly: bool) -> AsyncGenerator[AsyncSession, None]:
    """New session that commits on clean exit unless readonly, and rolls back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            if not readonly:
                commit_start = time.perf_counter()
                await session.commit()
                logger.debug(
                    f"Session commit: {(time.perf_counter() - commit_start) * 1000:.2f}ms"
                )
        except Exception as e:
            logger.error(f"Session rollback due to: {e}")
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    Every repository call inside shares one session and commits (or rolls
    back) together when the block exits.
    """
    effective_readonly = readonly or is_readonly_forced()
    async with _open_session(effective_readonly) as session:
        with bind_session(session, readonly=effective_readonly):
            yield session


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """Session for a single operation, reusing the enclosing transaction's if any."""
    effective_readonly = readonly or is_readonly_forced()
    existing = current_session(readonly=effective_readonly)
    if existing is not None:
        # The enclosing transaction owns commit and rollback
        yield existing
        return

    async with _open_session(effective_readonly) as session:
        yield session
