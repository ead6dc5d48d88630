from sqlalchemy import Column, String, Boolean, DateTime

from editsync.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    # у приглашенных по email пользователей пароля нет
    password_hash = Column(String(255), nullable=True)
    is_placeholder = Column(Boolean, default=False, nullable=False)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)
