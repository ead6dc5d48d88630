import uuid

from sqlalchemy import Column, DateTime, UUID

from editsync.core.clock import utcnow
from editsync.core.db import Base


class BaseModel(Base):
    """Общие колонки для всех таблиц"""
    __abstract__ = True

    uuid = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
