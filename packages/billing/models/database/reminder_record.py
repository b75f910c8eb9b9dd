"""
Database entity for reminder bookkeeping.
"""

from sqlalchemy import Column, DateTime, Integer, ForeignKey

from common.db.base import Base, BigIntegerType


class ReminderRecordEntity(Base):
    """Last reminder dispatched per account (at most one per calendar day)."""

    __tablename__ = "reminder_records"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    account_id = Column(
        BigIntegerType,
        ForeignKey("billing_accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    last_sent_at = Column(DateTime, nullable=False)
    last_offset_days = Column(Integer, nullable=False)
