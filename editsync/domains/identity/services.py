import logging
from datetime import timedelta
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from editsync.core.clock import utcnow
from editsync.core.config import settings
from editsync.core.errors import (
    AppError, Conflict, DeliveryFailure, NotFound, Unauthenticated, ValidationError
)
from editsync.core.security import create_access_token, generate_reset_token
from editsync.db.repositories.document_repository import DocumentRepository
from editsync.db.repositories.user_repository import UserRepository
from editsync.domains.identity.entities import User
from editsync.domains.identity.schemas import UserCreate, UserLogin, UserUpdate
from editsync.infrastructure.mail import templates
from editsync.infrastructure.mail.notifier import Notifier

logger = logging.getLogger(__name__)


class IdentityService:
    """Сервис для регистрации, входа и профиля пользователей"""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.notifier = notifier
        self.user_repository = UserRepository(session)

    async def register_user(self, user_data: UserCreate) -> Tuple[User, str]:
        """Регистрация нового пользователя"""
        if await self.user_repository.email_exists(user_data.email):
            raise Conflict("Email already registered")

        user = User.create_user(
            email=user_data.email,
            name=user_data.name,
            password=user_data.password
        )
        user = await self.user_repository.create(user)
        logger.info(f"Registered user {user.uuid}")

        await self._send_welcome(user)
        return user, self.issue_token(user)

    async def login_user(self, login_data: UserLogin) -> Tuple[User, str]:
        """Вход пользователя и создание JWT токена"""
        user = await self.user_repository.get_by_email(login_data.email)

        if not user or not user.authenticate(login_data.password):
            raise Unauthenticated("Invalid email or password")

        return user, self.issue_token(user)

    def issue_token(self, user: User) -> str:
        return create_access_token(data={"sub": str(user.uuid)})

    async def request_password_reset(self, email: str) -> None:
        """Создание токена сброса пароля и отправка письма"""
        user = await self.user_repository.get_by_email(email)
        if not user:
            raise NotFound("No user found with that email")

        token = generate_reset_token()
        expires_at = utcnow() + timedelta(minutes=settings.password_reset_expire_minutes)
        user.start_password_reset(token, expires_at)
        await self.user_repository.update(user)

        template = templates.password_reset_email(
            settings.frontend_url, token, settings.password_reset_expire_minutes
        )
        if self.notifier is None:
            raise DeliveryFailure()
        # ошибка доставки пробрасывается: токен остается сохраненным
        await self.notifier.send(user.email, template.subject, template.html)

    async def reset_password(self, token: str, new_password: str) -> User:
        user = await self.user_repository.get_by_reset_token(token, utcnow())
        if not user:
            raise ValidationError("Invalid or expired token")

        user.set_password(new_password)
        return await self.user_repository.update(user)

    async def get_user_by_uuid(self, user_uuid: uuid.UUID) -> User:
        """Получение пользователя по UUID"""
        user = await self.user_repository.get_by_uuid(user_uuid)
        if not user:
            raise NotFound("User not found")
        return user

    async def update_user_profile(self, user: User, update_data: UserUpdate) -> User:
        """Обновление профиля пользователя"""
        if update_data.email and update_data.email != user.email:
            if await self.user_repository.email_exists(update_data.email):
                raise Conflict("Email already in use")

        user.update_profile(name=update_data.name, email=update_data.email)
        return await self.user_repository.update(user)

    async def delete_user(self, user: User) -> None:
        """Удаление своего аккаунта вместе с документами"""
        removed = await DocumentRepository(self.session).delete_for_user(user.uuid)
        await self.user_repository.delete(user.uuid)
        logger.info(f"Deleted user {user.uuid} and {removed} owned documents")

    async def search_users(self, user: User, query: Optional[str]) -> List[User]:
        """Поиск других пользователей по имени или email"""
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        return await self.user_repository.search(query.strip(), exclude=user.uuid)

    async def _send_welcome(self, user: User) -> None:
        if self.notifier is None:
            return
        template = templates.welcome_email(user.name)
        try:
            await self.notifier.send(user.email, template.subject, template.html)
        except AppError as e:
            logger.error(f"Failed to send welcome email to {user.email}: {e.message}")
