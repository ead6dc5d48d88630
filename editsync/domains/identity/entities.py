import uuid
from datetime import datetime
from typing import Optional

from editsync.core.clock import utcnow
from editsync.core.security import get_password_hash, verify_password


class User:
    """Сущность пользователя домена Identity"""

    def __init__(
        self,
        uuid: uuid.UUID,
        email: str,
        name: str,
        password_hash: Optional[str] = None,
        is_placeholder: bool = False,
        reset_password_token: Optional[str] = None,
        reset_password_expires: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.email = email
        self.name = name
        self.password_hash = password_hash
        self.is_placeholder = is_placeholder
        self.reset_password_token = reset_password_token
        self.reset_password_expires = reset_password_expires
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or utcnow()

    @property
    def display_initial(self) -> str:
        """Буква для аватара: первая буква имени, иначе email"""
        source = self.name or self.email
        return source[:1].upper()

    def authenticate(self, password: str) -> bool:
        """Проверка пароля пользователя"""
        if not self.password_hash:
            return False
        return verify_password(password, self.password_hash)

    def set_password(self, password: str) -> None:
        self.password_hash = get_password_hash(password)
        self.is_placeholder = False
        self.reset_password_token = None
        self.reset_password_expires = None
        self.updated_at = utcnow()

    def update_profile(self, name: Optional[str] = None, email: Optional[str] = None) -> None:
        """Обновление профиля пользователя"""
        if name:
            self.name = name
        if email:
            self.email = email
        self.updated_at = utcnow()

    def start_password_reset(self, token: str, expires_at: datetime) -> None:
        self.reset_password_token = token
        self.reset_password_expires = expires_at
        self.updated_at = utcnow()

    @classmethod
    def create_user(cls, email: str, name: str, password: str) -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            uuid=uuid.uuid4(),
            email=email.lower(),
            name=name,
            password_hash=get_password_hash(password)
        )

    @classmethod
    def create_placeholder(cls, email: str) -> "User":
        """Пользователь, созданный приглашением по email"""
        email = email.lower()
        return cls(
            uuid=uuid.uuid4(),
            email=email,
            name=email.split("@")[0],
            is_placeholder=True
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.uuid == other.uuid

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __repr__(self) -> str:
        return f"User(uuid={self.uuid}, email={self.email}, name={self.name})"
