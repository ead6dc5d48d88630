from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Table, UUID

from editsync.core.clock import utcnow
from editsync.core.db import Base
from editsync.db.base import BaseModel


document_collaborators = Table(
    "document_collaborators",
    Base.metadata,
    Column("document_id", UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"), primary_key=True),
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.uuid", ondelete="CASCADE"), primary_key=True, index=True),
)


class Document(BaseModel):
    __tablename__ = "documents"

    title = Column(String(255), nullable=False)
    content = Column(Text, default="", nullable=False)
    file_type = Column(String(10), default="md", nullable=False)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.uuid", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False)
    last_modified = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
