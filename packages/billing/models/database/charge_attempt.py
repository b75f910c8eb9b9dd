"""
Database entity for the billing ledger.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, Index, text
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType

_LIVE_STATUS = text("status IN ('pending', 'succeeded')")


class ChargeAttemptEntity(Base):
    """
    Charge attempt (ledger entry) database entity.

    Append-only: rows are inserted as `pending` before the processor is
    contacted and resolved exactly once. The partial unique index allows at
    most one live (pending or succeeded) attempt per account and period while
    leaving failed attempts free to accumulate.
    """

    __tablename__ = "charge_attempts"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    account_id = Column(
        BigIntegerType,
        ForeignKey("billing_accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    kind = Column(String(20), nullable=False)  # first, renewal, pay_now
    status = Column(
        String(20), nullable=False, server_default="pending", index=True
    )  # pending, succeeded, failed

    # Amounts in minor currency units
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    base_amount = Column(Integer, nullable=False)
    storage_packs = Column(Integer, nullable=False, server_default="0")
    storage_pack_amount = Column(Integer, nullable=False, server_default="0")
    description = Column(String(255), nullable=False)

    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)

    processor_reference = Column(String(255), nullable=True)
    failure_reason = Column(String(500), nullable=True)
    # Set when a transient error was already counted against the account
    failure_counted = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    created_at = Column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )
    resolved_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "uq_charge_attempt_live_period",
            "account_id",
            "period_start",
            unique=True,
            postgresql_where=_LIVE_STATUS,
            sqlite_where=_LIVE_STATUS,
        ),
        Index("idx_charge_attempt_account_created", "account_id", "created_at"),
    )
