from datetime import datetime
from typing import Iterable, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
import uuid

from editsync.core.clock import ensure_utc
from editsync.core.errors import Conflict
from editsync.db.models.user import User as UserModel
from editsync.domains.identity.entities import User


class UserRepository:
    """Репозиторий для работы с пользователями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        """Создание нового пользователя"""
        db_user = UserModel(
            uuid=user.uuid,
            email=user.email,
            name=user.name,
            password_hash=user.password_hash,
            is_placeholder=user.is_placeholder,
            created_at=user.created_at,
            updated_at=user.updated_at
        )

        self.session.add(db_user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise Conflict("Email already registered")
        await self.session.refresh(db_user)
        return self._to_domain(db_user)

    async def get_by_uuid(self, user_uuid: uuid.UUID) -> Optional[User]:
        """Получение пользователя по UUID"""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.uuid == user_uuid)
            .execution_options(populate_existing=True)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email (без учета регистра)"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.lower())
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def get_many(self, user_uuids: Iterable[uuid.UUID]) -> List[User]:
        """Получение пользователей по списку UUID"""
        ids = list(user_uuids)
        if not ids:
            return []
        result = await self.session.execute(
            select(UserModel).where(UserModel.uuid.in_(ids))
        )
        return [self._to_domain(user) for user in result.scalars().all()]

    async def get_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        """Пользователь с действующим токеном сброса пароля"""
        result = await self.session.execute(
            select(UserModel).where(
                UserModel.reset_password_token == token,
                UserModel.reset_password_expires > now
            )
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def search(self, query: str, exclude: Optional[uuid.UUID] = None, limit: int = 50) -> List[User]:
        """Поиск по подстроке имени или email"""
        needle = query.lower()
        stmt = select(UserModel).where(
            or_(
                func.lower(UserModel.name).contains(needle, autoescape=True),
                func.lower(UserModel.email).contains(needle, autoescape=True)
            )
        )
        if exclude is not None:
            stmt = stmt.where(UserModel.uuid != exclude)

        result = await self.session.execute(stmt.order_by(UserModel.name).limit(limit))
        return [self._to_domain(user) for user in result.scalars().all()]

    async def update(self, user: User) -> User:
        """Обновление пользователя"""
        stmt = (
            update(UserModel)
            .where(UserModel.uuid == user.uuid)
            .values(
                email=user.email,
                name=user.name,
                password_hash=user.password_hash,
                is_placeholder=user.is_placeholder,
                reset_password_token=user.reset_password_token,
                reset_password_expires=user.reset_password_expires,
                updated_at=user.updated_at
            )
        )

        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise Conflict("Email already in use")

        return await self.get_by_uuid(user.uuid)

    async def delete(self, user_uuid: uuid.UUID) -> bool:
        """Удаление пользователя"""
        result = await self.session.execute(delete(UserModel).where(UserModel.uuid == user_uuid))
        await self.session.commit()
        return result.rowcount > 0

    async def email_exists(self, email: str) -> bool:
        """Проверка существования email"""
        result = await self.session.execute(
            select(UserModel.uuid).where(UserModel.email == email.lower())
        )
        return result.scalar_one_or_none() is not None

    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            uuid=db_user.uuid,
            email=db_user.email,
            name=db_user.name,
            password_hash=db_user.password_hash,
            is_placeholder=db_user.is_placeholder,
            reset_password_token=db_user.reset_password_token,
            reset_password_expires=ensure_utc(db_user.reset_password_expires),
            created_at=ensure_utc(db_user.created_at),
            updated_at=ensure_utc(db_user.updated_at)
        )
