from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.sql import func

from common.core.clock import utcnow
from common.db.base import Base, BigIntegerType


class WorkspaceEntity(Base):
    __tablename__ = "workspaces"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    # Restricted mode: reads allowed, mutations blocked until this instant
    restricted_until = Column(DateTime, nullable=True)
    deleted = Column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )
