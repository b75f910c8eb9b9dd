"""
Database entity for billing accounts.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Index
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType


class BillingAccountEntity(Base):
    """
    Billing account database entity.

    One row per paying identity. Never deleted: termination and cancellation
    only flip `is_subscribed` and stamp dates. All timestamps are naive UTC.
    """

    __tablename__ = "billing_accounts"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)

    # Subscription lifecycle
    is_subscribed = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_permanent = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    subscription_start_date = Column(DateTime, nullable=True)
    renewal_date = Column(DateTime, nullable=True, index=True)
    subscription_end_date = Column(DateTime, nullable=True)  # scheduled cancellation
    terminated_at = Column(DateTime, nullable=True)

    # Dunning
    failure_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_billing_attempt_at = Column(DateTime, nullable=True)
    # Set on termination, cleared once every workspace has been cascaded
    cascade_pending = Column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )

    # External processor references
    processor_customer_id = Column(String(255), nullable=True, unique=True)
    processor_payment_method_id = Column(String(255), nullable=True)

    # Metered usage allowance
    storage_packs = Column(Integer, nullable=False, default=0, server_default="0")
    storage_limit_gb = Column(Integer, nullable=False, default=10, server_default="10")

    created_at = Column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_billing_account_subscribed_renewal", "is_subscribed", "renewal_date"),
    )
