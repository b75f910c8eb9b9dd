from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType


class WorkspaceMembershipEntity(Base):
    __tablename__ = "workspace_memberships"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    workspace_id = Column(
        BigIntegerType,
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id = Column(
        BigIntegerType,
        ForeignKey("billing_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    privilege = Column(String(20), nullable=False)  # elevated, standard
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "account_id", name="uq_membership_workspace_account"),
        Index("idx_membership_account_privilege", "account_id", "privilege"),
    )
