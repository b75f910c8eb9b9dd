# Shared pytest configuration and fixtures for all test types
import itertools
from datetime import datetime, timedelta

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch

from common.core.clock import utcnow

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.base import Base
from packages.audit.models.database.audit_event import AuditEventEntity  # noqa
from packages.auth.dependencies import get_current_account
from packages.auth.models.domain.authenticated_account import AuthenticatedAccount
from packages.billing.models.database import (  # noqa
    BillingAccountEntity,
    ChargeAttemptEntity,
    MeteredObjectEntity,
    ReminderRecordEntity,
)
from packages.billing.models.domain.billing_account import (
    BillingAccount,
    BillingAccountCreateModel,
    BillingAccountUpdateModel,
)
from packages.billing.models.domain.usage import MeteredObjectCreateModel
from packages.billing.repositories.billing_account_repository import (
    BillingAccountRepository,
)
from packages.billing.repositories.usage_repository import UsageRepository
from packages.workspaces.models.database.membership import (  # noqa
    WorkspaceMembershipEntity,
)
from packages.workspaces.models.database.workspace import WorkspaceEntity  # noqa
from packages.workspaces.models.domain.enums import PrivilegeLevel
from packages.workspaces.models.domain.workspace import Workspace, WorkspaceCreateModel
from packages.workspaces.services.workspace_service import WorkspaceService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Day 0 for scenario tests; "day N" is BASE_TIME + N days
BASE_TIME = datetime(2026, 3, 1, 2, 0, 0)


def day(n: float) -> datetime:
    return BASE_TIME + timedelta(days=n)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest_asyncio.fixture(scope="function")
async def make_account():
    """Factory for billing accounts; keyword arguments are applied as updates."""
    repo = BillingAccountRepository()
    counter = itertools.count(1)

    async def _make(
        created_at: datetime = BASE_TIME, is_permanent: bool = False, **changes
    ) -> BillingAccount:
        n = next(counter)
        account = await repo.create(
            BillingAccountCreateModel(
                email=f"account{n}@example.com",
                display_name=f"Account {n}",
                is_permanent=is_permanent,
                created_at=created_at,
            )
        )
        if changes:
            account = await repo.update(account.id, BillingAccountUpdateModel(**changes))
        return account

    return _make


@pytest_asyncio.fixture(scope="function")
async def make_subscriber(make_account):
    """Factory for subscribed accounts with a saved card, renewing at `renewal_date`."""
    counter = itertools.count(1)

    async def _make(renewal_date: datetime, **changes) -> BillingAccount:
        n = next(counter)
        fields = dict(
            is_subscribed=True,
            subscription_start_date=renewal_date - timedelta(days=30),
            renewal_date=renewal_date,
            processor_customer_id=f"cus_sub_{n}",
            processor_payment_method_id=f"pm_sub_{n}",
        )
        fields.update(changes)
        return await make_account(
            created_at=renewal_date - timedelta(days=60), **fields
        )

    return _make


@pytest_asyncio.fixture(scope="function")
async def make_workspace():
    """Factory for workspaces with elevated holders and optional stored bytes."""
    service = WorkspaceService()
    usage_repo = UsageRepository()
    counter = itertools.count(1)

    async def _make(
        owner: BillingAccount, *other_elevated: BillingAccount, stored_bytes: int = 0
    ) -> Workspace:
        n = next(counter)
        workspace = await service.create_workspace(
            WorkspaceCreateModel(name=f"Workspace {n}"), owner.id
        )
        for holder in other_elevated:
            await service.add_member(workspace.id, holder.id, PrivilegeLevel.ELEVATED)
        if stored_bytes:
            await usage_repo.record_object(
                MeteredObjectCreateModel(
                    workspace_id=workspace.id,
                    storage_key=f"workspaces/{workspace.id}/blob",
                    size_bytes=stored_bytes,
                )
            )
        return workspace

    return _make


@pytest_asyncio.fixture(scope="function")
async def sample_account(make_account):
    """Trial account created now, with a saved card."""
    return await make_account(
        created_at=utcnow(),
        processor_customer_id="cus_sample",
        processor_payment_method_id="pm_sample",
    )


@pytest_asyncio.fixture(scope="function")
async def client(sample_account):
    """Create a test client authenticated as `sample_account`."""

    def override_get_current_account():
        return AuthenticatedAccount(
            account_id=sample_account.id, email=sample_account.email
        )

    app.dependency_overrides[get_current_account] = override_get_current_account

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
