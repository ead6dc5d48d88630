from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UUID

from editsync.db.base import BaseModel


class ShareGrant(BaseModel):
    __tablename__ = "share_grants"

    document_id = Column(
        UUID(as_uuid=True), ForeignKey("documents.uuid", ondelete="CASCADE"),
        nullable=False, unique=True, index=True
    )
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.uuid", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False)
    permission = Column(String(10), default="view", nullable=False)
    allow_comments = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)


class ShareGrantUser(BaseModel):
    __tablename__ = "share_grant_users"

    grant_id = Column(UUID(as_uuid=True), ForeignKey("share_grants.uuid", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.uuid", ondelete="SET NULL"), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    permission = Column(String(10), default="view", nullable=False)
