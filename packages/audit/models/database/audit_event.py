from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType


class AuditEventEntity(Base):
    """Append-only audit trail of entitlement changes."""

    __tablename__ = "audit_events"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    event_type = Column(String(50), nullable=False, index=True)
    workspace_id = Column(BigIntegerType, nullable=True, index=True)
    account_id = Column(BigIntegerType, nullable=True, index=True)
    membership_id = Column(BigIntegerType, nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("idx_audit_workspace_created", "workspace_id", "created_at"),)
