"""
Database entity for metered storage objects.
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType


class MeteredObjectEntity(Base):
    """
    Stored object whose size counts toward a workspace's metered usage.

    Written by the upload path; billing only aggregates `size_bytes` of rows
    that are not soft-deleted.
    """

    __tablename__ = "metered_objects"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    workspace_id = Column(
        BigIntegerType,
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    storage_key = Column(String(500), nullable=False)
    size_bytes = Column(BigIntegerType, nullable=False)
    deleted = Column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )
    created_at = Column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("idx_metered_object_workspace_live", "workspace_id", "deleted"),)
